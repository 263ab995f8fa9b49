"""
Access-token lifecycle for Playlistify.

A ``TokenManager`` turns long-lived credentials (client ID, client secret and a
user refresh token) into a short-lived bearer token, caches it for the life of
the manager and refreshes it shortly before it expires.
"""

from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass
from time import time
from typing import Callable, Optional, Tuple

import httpx

from .errors import InvalidCredentials, TokenExchangeFailed
from .transport import HttpTransport

logger = logging.getLogger(__name__)


# Tokens this close to expiry are treated as already expired.
TOKEN_EXPIRY_MARGIN_SECONDS = 60
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str
    refresh_token: str

    def basic_auth_header(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("utf-8")


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at - TOKEN_EXPIRY_MARGIN_SECONDS


class TokenManager:
    """
    Issue valid bearer tokens for a set of credentials.

    The cache holds a single token and belongs to this instance only. A lock
    keeps at most one refresh in flight; threads that waited on it reuse the
    token the first one obtained.
    """

    def __init__(
        self,
        transport: HttpTransport,
        *,
        clock: Callable[[], float] = time,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._transport = transport
        self._clock = clock
        self._log = log or logger
        # (owner, token), replaced as a whole.
        self._slot: Optional[Tuple[Credentials, AccessToken]] = None
        self._lock = threading.Lock()

    @property
    def cached_token(self) -> Optional[AccessToken]:
        return self._slot[1] if self._slot else None

    def invalidate(self) -> None:
        self._slot = None

    def get_access_token(self, credentials: Credentials) -> AccessToken:
        _ensure_credentials(credentials)

        token = self._cached_for(credentials)
        if token is not None:
            self._log.debug("Using cached Spotify access token")
            return token

        with self._lock:
            token = self._cached_for(credentials)
            if token is not None:
                return token
            return self._refresh(credentials)

    def _cached_for(self, credentials: Credentials) -> Optional[AccessToken]:
        slot = self._slot
        if slot is None or slot[0] != credentials:
            return None
        token = slot[1]
        if token.is_expired(self._clock()):
            return None
        return token

    def _refresh(self, credentials: Credentials) -> AccessToken:
        self._log.info("Refreshing Spotify access token (refresh_token grant)")
        try:
            resp = self._transport.request_token(
                headers={"Authorization": credentials.basic_auth_header()},
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": credentials.refresh_token,
                },
            )
        except httpx.HTTPError as exc:
            self._log.error(f"Failed to contact Spotify token endpoint: {exc}")
            raise TokenExchangeFailed(
                f"Failed to contact Spotify token endpoint: {exc}", body=str(exc)
            ) from exc

        if not resp.is_success:
            self._log.error(f"Spotify token refresh failed: {resp.status_code} {resp.text}")
            raise TokenExchangeFailed(
                f"Spotify token refresh failed: {resp.status_code} {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            self._log.error(f"Spotify token endpoint returned a non-JSON body: {resp.text[:200]}")
            raise TokenExchangeFailed(
                "Spotify token endpoint returned a non-JSON body.",
                status_code=resp.status_code,
                body=resp.text,
            ) from exc

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            self._log.error("Spotify token response missing access_token")
            raise TokenExchangeFailed(
                "Spotify token response missing access_token.",
                status_code=resp.status_code,
                body=resp.text,
            )

        # Only an absent expires_in falls back to the default; 0 means already expired.
        expires_in = data.get("expires_in")
        expires_in = DEFAULT_EXPIRES_IN if expires_in is None else int(expires_in)

        token = AccessToken(access_token=access_token, expires_at=self._clock() + expires_in)
        self._slot = (credentials, token)
        self._log.info(f"Spotify access token obtained (expires in {expires_in}s)")
        return token


def _ensure_credentials(credentials: Credentials) -> None:
    missing = [
        name
        for name in ("client_id", "client_secret", "refresh_token")
        if not getattr(credentials, name)
    ]
    if missing:
        logger.error(f"Spotify credentials missing: {', '.join(missing)}")
        raise InvalidCredentials(
            "Spotify credentials are incomplete; missing "
            + ", ".join(missing)
            + ". Set PLAYLISTIFY_SPOTIFY_CLIENT_ID, PLAYLISTIFY_SPOTIFY_CLIENT_SECRET "
            "and PLAYLISTIFY_SPOTIFY_REFRESH_TOKEN."
        )


__all__ = [
    "AccessToken",
    "Credentials",
    "DEFAULT_EXPIRES_IN",
    "TOKEN_EXPIRY_MARGIN_SECONDS",
    "TokenManager",
]
