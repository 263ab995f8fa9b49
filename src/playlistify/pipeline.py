"""
Vibe-to-playlist pipeline for Playlistify.

Steps:
1) Collect the genre, mood and activity tags from a ``PlaylistRequest``.
2) Search Spotify through the ``PlaylistOrchestrator``.
3) Hand back a ``PlaylistDraft`` the caller can save locally or publish.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .spotify import PlaylistOrchestrator, Track
from .tokens import Credentials

logger = logging.getLogger(__name__)


@dataclass
class PlaylistRequest:
    description: str = ""
    genres: List[str] = field(default_factory=list)
    moods: List[str] = field(default_factory=list)
    activities: List[str] = field(default_factory=list)
    track_count: int = 20


@dataclass
class PlaylistDraft:
    title: str
    description: str
    tracks: List[Track]

    @property
    def track_uris(self) -> List[str]:
        return [t.uri for t in self.tracks]

    @property
    def total_duration_ms(self) -> int:
        return sum(t.duration_ms for t in self.tracks)


@dataclass
class GeneratedPlaylist:
    tags: List[str]
    tracks: List[Track]

    @property
    def total_duration_ms(self) -> int:
        return sum(t.duration_ms for t in self.tracks)

    def to_draft(self, title: str, description: str = "") -> PlaylistDraft:
        return PlaylistDraft(title=title, description=description, tracks=list(self.tracks))


def build_tags(request: PlaylistRequest) -> List[str]:
    """Genres first, then moods, then activities; blanks and repeats dropped."""
    tags: List[str] = []
    for raw in [*request.genres, *request.moods, *request.activities]:
        tag = raw.strip()
        if tag and tag.lower() not in {t.lower() for t in tags}:
            tags.append(tag)
    return tags


def generate_playlist(
    orchestrator: PlaylistOrchestrator,
    credentials: Credentials,
    request: PlaylistRequest,
) -> GeneratedPlaylist:
    tags = build_tags(request)
    logger.info(f"Generating playlist: tags={tags}, track_count={request.track_count}")
    tracks = orchestrator.search(credentials, tags, request.track_count)
    return GeneratedPlaylist(tags=tags, tracks=tracks)


def publish_playlist(
    orchestrator: PlaylistOrchestrator,
    credentials: Credentials,
    draft: PlaylistDraft,
    description: Optional[str] = None,
) -> str:
    """Publish ``draft`` as a private Spotify playlist and return its URL."""
    logger.info(f"Publishing draft {draft.title!r} ({len(draft.tracks)} tracks)")
    return orchestrator.create_playlist(
        credentials,
        draft.title,
        description or draft.description or None,
        draft.track_uris,
    )


def format_duration(duration_ms: int) -> str:
    """Render milliseconds as m:ss (or h:mm:ss for an hour or more)."""
    total_seconds = max(0, duration_ms) // 1000
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


__all__ = [
    "GeneratedPlaylist",
    "PlaylistDraft",
    "PlaylistRequest",
    "build_tags",
    "format_duration",
    "generate_playlist",
    "publish_playlist",
]
