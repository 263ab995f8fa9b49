from __future__ import annotations

from pathlib import Path

from playlistify import library
from playlistify.pipeline import PlaylistDraft
from playlistify.spotify import Track


def _draft(title: str = "Rainy Sunday") -> PlaylistDraft:
    return PlaylistDraft(
        title=title,
        description="slow songs",
        tracks=[
            Track(
                id="a",
                name="First",
                artist="One, Two",
                album="LP",
                duration_ms=201000,
                uri="spotify:track:a",
                spotify_url="https://open.spotify.com/track/a",
                album_art="https://img.example/a.jpg",
            ),
            Track(
                id="b",
                name="Second",
                artist="Three",
                album="EP",
                duration_ms=99000,
                uri="spotify:track:b",
                spotify_url="https://open.spotify.com/track/b",
                preview_url="https://p.scdn.co/mp3-preview/b",
            ),
        ],
    )


def test_saved_draft_loads_back_with_same_tracks(tmp_path: Path) -> None:
    draft = _draft()

    draft_id = library.save_draft(draft, base=tmp_path)
    loaded = library.load_draft(draft_id, base=tmp_path)

    assert draft_id == "rainy-sunday"
    assert loaded == draft
    assert (tmp_path / "playlists" / "rainy-sunday.json").exists()


def test_colliding_titles_get_suffixes(tmp_path: Path) -> None:
    first = library.save_draft(_draft(), base=tmp_path)
    second = library.save_draft(_draft(), base=tmp_path)

    assert (first, second) == ("rainy-sunday", "rainy-sunday-2")


def test_list_drafts_summarises_and_skips_broken_files(tmp_path: Path) -> None:
    library.save_draft(_draft("Gym"), base=tmp_path)
    (tmp_path / "playlists" / "broken.json").write_text("{not json", encoding="utf-8")

    drafts = library.list_drafts(base=tmp_path)

    assert [(d["id"], d["track_count"]) for d in drafts] == [("gym", 2)]


def test_load_missing_draft_returns_none(tmp_path: Path) -> None:
    assert library.load_draft("nope", base=tmp_path) is None


def test_delete_draft(tmp_path: Path) -> None:
    draft_id = library.save_draft(_draft(), base=tmp_path)

    assert library.delete_draft(draft_id, base=tmp_path) is True
    assert library.delete_draft(draft_id, base=tmp_path) is False
    assert library.list_drafts(base=tmp_path) == []


def test_default_location_is_config_dir(isolated_config_dir: Path) -> None:
    library.save_draft(_draft("Default"))

    assert (isolated_config_dir / "playlists" / "default.json").exists()
