"""
Exception hierarchy for Playlistify's Spotify layer.

Every failure that came back from Spotify keeps the upstream status code and
the raw response body exactly as received. Nothing here retries.
"""

from __future__ import annotations

from typing import Optional


class SpotifyError(Exception):
    """Base exception for Spotify-related issues."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class InvalidCredentials(SpotifyError):
    """Client ID, client secret or refresh token is missing."""


class TokenExchangeFailed(SpotifyError):
    """The refresh-token grant was rejected or could not be sent."""


class SearchRequestFailed(SpotifyError):
    """Spotify search returned a non-success response."""


class NoResults(SpotifyError):
    """Spotify search succeeded but matched zero tracks."""


class IdentityResolutionFailed(SpotifyError):
    """The current-user lookup (/me) failed."""


class PlaylistCreationFailed(SpotifyError):
    """Creating the empty playlist container failed."""


class TrackInsertionFailed(SpotifyError):
    """
    A batch of tracks could not be added to an already created playlist.

    The playlist and every batch before ``batch_index`` already exist on the
    user's account; they are not rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        batch_index: int,
        total_batches: int,
        playlist_id: str,
        playlist_url: Optional[str],
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message, status_code=status_code, body=body)
        self.batch_index = batch_index
        self.total_batches = total_batches
        self.playlist_id = playlist_id
        self.playlist_url = playlist_url

    @property
    def inserted_batches(self) -> int:
        return self.batch_index - 1


__all__ = [
    "SpotifyError",
    "InvalidCredentials",
    "TokenExchangeFailed",
    "SearchRequestFailed",
    "NoResults",
    "IdentityResolutionFailed",
    "PlaylistCreationFailed",
    "TrackInsertionFailed",
]
