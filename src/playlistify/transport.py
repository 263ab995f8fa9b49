"""
HTTP transport for the Spotify layer.

The Token Manager and the Playlist Orchestrator never build URLs themselves;
they hand a method and a path to a transport. Talking to Spotify directly or
through a Playlistify backend (see ``playlistify.api``) only changes the base
addresses the transport was built with.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"


class HttpTransport:
    """
    Thin wrapper over ``httpx.Client`` bound to one set of base addresses.

    Network errors are raised as ``httpx.HTTPError``; non-success responses are
    returned to the caller untouched.
    """

    def __init__(
        self,
        api_base_url: str = SPOTIFY_API_BASE_URL,
        token_url: str = SPOTIFY_TOKEN_URL,
        *,
        health_url: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_base_url = api_base_url.rstrip("/")
        self.token_url = token_url
        self.health_url = health_url
        self._http = client or httpx.Client(timeout=timeout)

    @classmethod
    def direct(cls, *, timeout: float = 10.0) -> "HttpTransport":
        return cls(SPOTIFY_API_BASE_URL, SPOTIFY_TOKEN_URL, timeout=timeout)

    @classmethod
    def via_backend(
        cls,
        backend_url: str,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> "HttpTransport":
        """Route every call through a Playlistify backend's /proxy routes."""
        base = backend_url.rstrip("/")
        return cls(
            f"{base}/proxy/v1",
            f"{base}/proxy/token",
            health_url=f"{base}/health",
            timeout=timeout,
            client=client,
        )

    def perform_request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> httpx.Response:
        url = path if path.startswith(("http://", "https://")) else f"{self.api_base_url}{path}"
        logger.debug(f"HTTP request: {method} {url}")
        return self._http.request(
            method,
            url,
            headers=headers,
            params=params,
            data=data,
            json=json,
        )

    def request_token(self, *, headers: Dict[str, str], data: Dict[str, str]) -> httpx.Response:
        return self.perform_request("POST", self.token_url, headers=headers, data=data)

    def probe_health(self) -> Optional[httpx.Response]:
        if not self.health_url:
            return None
        return self.perform_request("GET", self.health_url)

    def close(self) -> None:
        logger.debug("Closing HttpTransport HTTP connection")
        self._http.close()


__all__ = ["HttpTransport", "SPOTIFY_API_BASE_URL", "SPOTIFY_TOKEN_URL"]
