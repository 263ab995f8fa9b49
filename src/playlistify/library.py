"""
Local storage for playlist drafts.

Each saved draft is one JSON file under ``<config dir>/playlists``. The file
holds only what is needed to rebuild the track list later.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .config import get_default_config_dir
from .pipeline import PlaylistDraft
from .spotify import Track

logger = logging.getLogger(__name__)


def _library_dir(base: Optional[Path] = None) -> Path:
    path = (base or get_default_config_dir()) / "playlists"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or "playlist"


def _draft_path(draft_id: str, base: Optional[Path] = None) -> Path:
    safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in draft_id)
    return _library_dir(base) / f"{safe_id}.json"


def save_draft(draft: PlaylistDraft, *, base: Optional[Path] = None) -> str:
    """Save ``draft`` and return its id. Titles that collide get a numeric suffix."""
    slug = _slugify(draft.title)
    draft_id = slug
    n = 2
    while _draft_path(draft_id, base).exists():
        draft_id = f"{slug}-{n}"
        n += 1

    payload = {
        "id": draft_id,
        "title": draft.title,
        "description": draft.description,
        "saved_at": datetime.now(timezone.utc).isoformat(),
        "tracks": [t.to_dict() for t in draft.tracks],
    }
    with _draft_path(draft_id, base).open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    logger.info(f"Saved playlist draft {draft_id!r} ({len(draft.tracks)} tracks)")
    return draft_id


def load_draft(draft_id: str, *, base: Optional[Path] = None) -> Optional[PlaylistDraft]:
    path = _draft_path(draft_id, base)
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return PlaylistDraft(
        title=data.get("title", draft_id),
        description=data.get("description", ""),
        tracks=[Track(**t) for t in data.get("tracks", [])],
    )


def list_drafts(*, base: Optional[Path] = None) -> List[dict]:
    """Summaries of every saved draft, newest first."""
    summaries: List[dict] = []
    for path in _library_dir(base).glob("*.json"):
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Skipping unreadable playlist draft {path.name}: {exc}")
            continue
        summaries.append(
            {
                "id": data.get("id", path.stem),
                "title": data.get("title", path.stem),
                "track_count": len(data.get("tracks", [])),
                "saved_at": data.get("saved_at", ""),
            }
        )
    summaries.sort(key=lambda s: s["saved_at"], reverse=True)
    return summaries


def delete_draft(draft_id: str, *, base: Optional[Path] = None) -> bool:
    try:
        _draft_path(draft_id, base).unlink()
    except FileNotFoundError:
        return False
    logger.info(f"Deleted playlist draft {draft_id!r}")
    return True


__all__ = ["delete_draft", "list_drafts", "load_draft", "save_draft"]
