"""
Spotify integration layer for Playlistify.

- Keyword search for tracks (one page, "track" type only).
- Private playlist creation on the connected user's account, with tracks
  appended in ordered, bounded batches.

Every operation asks the ``TokenManager`` for a valid bearer token first. The
same orchestrator works against Spotify directly or through a Playlistify
backend; only the ``HttpTransport`` it was built with differs.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx

from .errors import (
    IdentityResolutionFailed,
    NoResults,
    PlaylistCreationFailed,
    SearchRequestFailed,
    SpotifyError,
    TrackInsertionFailed,
)
from .tokens import Credentials, TokenManager
from .transport import HttpTransport

logger = logging.getLogger(__name__)


# Provider-imposed ceilings.
MAX_SEARCH_PAGE_SIZE = 50
MAX_TRACKS_PER_REQUEST = 100

FALLBACK_QUERY = "pop"

T = TypeVar("T")


@dataclass(frozen=True)
class Track:
    id: str
    name: str
    artist: str
    album: str
    duration_ms: int
    uri: str
    spotify_url: str
    album_art: Optional[str] = None
    preview_url: Optional[str] = None

    @classmethod
    def from_spotify(cls, item: Dict[str, Any]) -> "Track":
        album = item.get("album") or {}
        images = album.get("images") or []
        album_art = images[0].get("url") if images and isinstance(images[0], dict) else None
        return cls(
            id=item.get("id") or "",
            name=item.get("name", "<unknown>"),
            artist=", ".join(a.get("name", "") for a in item.get("artists", []) or []),
            album=album.get("name", ""),
            duration_ms=int(item.get("duration_ms") or 0),
            uri=item.get("uri") or f"spotify:track:{item.get('id')}",
            spotify_url=(item.get("external_urls") or {}).get("spotify", ""),
            album_art=album_art,
            preview_url=item.get("preview_url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def batched(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` entries."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def default_description(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Created with Playlistify on {today.isoformat()}"


class PlaylistOrchestrator:
    """
    Search the Spotify catalog and publish playlists for one user.

    Operations surface every failure immediately as a typed ``SpotifyError``;
    retrying is the caller's decision.
    """

    def __init__(
        self,
        transport: HttpTransport,
        *,
        token_manager: Optional[TokenManager] = None,
        market: Optional[str] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self._transport = transport
        self._log = log or logger
        self._tokens = token_manager or TokenManager(transport, log=self._log)
        self._market = market

    @property
    def token_manager(self) -> TokenManager:
        return self._tokens

    # --------------------------------------------------------------------- #
    # Low-level request helper
    # --------------------------------------------------------------------- #
    def _request(
        self,
        credentials: Credentials,
        method: str,
        path: str,
        error_cls: Type[SpotifyError],
        **kwargs: Any,
    ) -> httpx.Response:
        token = self._tokens.get_access_token(credentials)
        headers = {"Authorization": f"Bearer {token.access_token}"}

        self._log.debug(f"Spotify API request: {method} {path}")
        try:
            resp = self._transport.perform_request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            self._log.error(f"HTTP error calling Spotify API {path}: {exc}")
            raise error_cls(f"Error calling Spotify API {path}: {exc}", body=str(exc)) from exc

        if not resp.is_success:
            self._log.error(f"Spotify API error {resp.status_code} on {path}: {resp.text}")
            raise error_cls(
                f"Spotify API error {resp.status_code} on {path}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return resp

    def _json(self, resp: httpx.Response, path: str, error_cls: Type[SpotifyError]) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            self._log.error(f"Spotify API returned a non-JSON body on {path}: {resp.text[:200]}")
            raise error_cls(
                f"Spotify API returned a non-JSON body on {path}.",
                status_code=resp.status_code,
                body=resp.text,
            ) from exc
        if not isinstance(data, dict):
            raise error_cls(
                f"Unexpected Spotify API response on {path}.",
                status_code=resp.status_code,
                body=resp.text,
            )
        return data

    # --------------------------------------------------------------------- #
    # Search
    # --------------------------------------------------------------------- #
    def search(self, credentials: Credentials, tags: Sequence[str], limit: int = 20) -> List[Track]:
        """
        Search for tracks matching the first tag, or ``FALLBACK_QUERY`` when
        no tags were given. Combining several tags is not attempted.
        """
        query = tags[0] if tags else FALLBACK_QUERY
        page_size = max(1, min(limit, MAX_SEARCH_PAGE_SIZE))
        self._log.info(f"Searching Spotify tracks: query={query!r}, limit={page_size}")

        params: Dict[str, Any] = {"q": query, "type": "track", "limit": page_size}
        if self._market:
            params["market"] = self._market

        resp = self._request(credentials, "GET", "/search", SearchRequestFailed, params=params)
        items = (self._json(resp, "/search", SearchRequestFailed).get("tracks") or {}).get("items") or []
        if not items:
            self._log.warning(f"No tracks found for search query: {query!r}")
            raise NoResults(
                f"No tracks found for {query!r}. Try different genres or settings.",
                status_code=resp.status_code,
                body=resp.text,
            )

        tracks = [Track.from_spotify(item) for item in items if item]
        self._log.info(f"Spotify search returned {len(tracks)} tracks")
        return tracks

    # --------------------------------------------------------------------- #
    # Playlists
    # --------------------------------------------------------------------- #
    def get_current_user(self, credentials: Credentials) -> Dict[str, Any]:
        resp = self._request(credentials, "GET", "/me", IdentityResolutionFailed)
        data = self._json(resp, "/me", IdentityResolutionFailed)
        if not data.get("id"):
            self._log.error("Spotify /me response missing user id")
            raise IdentityResolutionFailed(
                "Spotify /me response missing user id.",
                status_code=resp.status_code,
                body=resp.text,
            )
        return data

    def create_playlist(
        self,
        credentials: Credentials,
        title: str,
        description: Optional[str],
        track_uris: Sequence[str],
    ) -> str:
        """
        Create a private playlist and fill it with ``track_uris`` in order.

        Returns the playlist's external Spotify URL. If a batch of tracks fails,
        ``TrackInsertionFailed`` is raised; the playlist and the earlier
        batches are left in place and the URL is available on the exception.
        """
        user = self.get_current_user(credentials)
        user_id = user["id"]
        self._log.info(f"Creating playlist {title!r} for user {user_id}")

        payload = {
            "name": title,
            "description": description or default_description(),
            "public": False,
        }
        resp = self._request(
            credentials,
            "POST",
            f"/users/{user_id}/playlists",
            PlaylistCreationFailed,
            json=payload,
        )
        data = self._json(resp, f"/users/{user_id}/playlists", PlaylistCreationFailed)
        playlist_id = data.get("id")
        playlist_url = (data.get("external_urls") or {}).get("spotify") or ""
        if not playlist_id:
            raise PlaylistCreationFailed(
                "Spotify create playlist response missing playlist id.",
                status_code=resp.status_code,
                body=resp.text,
            )
        self._log.info(f"Playlist created successfully: {playlist_id} ({playlist_url})")

        batches = batched(list(track_uris), MAX_TRACKS_PER_REQUEST)
        for index, batch in enumerate(batches, start=1):
            try:
                self._request(
                    credentials,
                    "POST",
                    f"/playlists/{playlist_id}/tracks",
                    SpotifyError,
                    json={"uris": batch},
                )
            except SpotifyError as exc:
                self._log.error(
                    f"Adding batch {index}/{len(batches)} to playlist {playlist_id} failed; "
                    f"{index - 1} batch(es) already inserted"
                )
                raise TrackInsertionFailed(
                    f"Failed to add tracks (batch {index} of {len(batches)}): {exc.body}",
                    batch_index=index,
                    total_batches=len(batches),
                    playlist_id=playlist_id,
                    playlist_url=playlist_url,
                    status_code=exc.status_code,
                    body=exc.body,
                ) from exc
            self._log.debug(f"Added batch {index}/{len(batches)} ({len(batch)} tracks)")

        if track_uris:
            self._log.info(f"Added {len(track_uris)} tracks to playlist {playlist_id}")
        return playlist_url

    # --------------------------------------------------------------------- #
    # Health
    # --------------------------------------------------------------------- #
    def check_backend_health(self) -> bool:
        """Advisory liveness probe of the backend; never raises."""
        try:
            resp = self._transport.probe_health()
            if resp is None or not resp.is_success:
                return False
            return resp.json().get("status") in {"healthy", "ok"}
        except Exception as exc:
            self._log.warning(f"Backend health check failed: {exc}")
            return False

    def close(self) -> None:
        self._transport.close()


__all__ = [
    "FALLBACK_QUERY",
    "MAX_SEARCH_PAGE_SIZE",
    "MAX_TRACKS_PER_REQUEST",
    "PlaylistOrchestrator",
    "Track",
    "batched",
    "default_description",
]
