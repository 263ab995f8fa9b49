"""
CLI entrypoint for Playlistify.

Commands:
- search: find tracks for a set of tags and print a styled table.
- create: search, then publish the result as a private Spotify playlist.
- publish / saved / delete: work with drafts saved by `search --save`.
- whoami / health: check credentials and the backend.
- serve: run the FastAPI backend.
"""

from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
import uvicorn

from . import library
from .config import build_transport, load_config, setup_logging
from .errors import SpotifyError, TrackInsertionFailed
from .pipeline import PlaylistRequest, format_duration, generate_playlist, publish_playlist
from .spotify import PlaylistOrchestrator, Track
from .tokens import Credentials


app = typer.Typer(help="Playlistify – describe a vibe, get a Spotify playlist.")
console = Console()


@app.callback()
def main() -> None:
    setup_logging()


def _orchestrator() -> PlaylistOrchestrator:
    cfg = load_config().spotify
    return PlaylistOrchestrator(build_transport(cfg), market=cfg.market)


def _credentials() -> Credentials:
    return load_config().spotify.credentials


def _render_tracks(title: str, tracks: List[Track]) -> None:
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Track", style="bold")
    table.add_column("Artist", style="magenta")
    table.add_column("Album")
    table.add_column("Time", justify="right")
    table.add_column("URI", style="dim")

    for idx, track in enumerate(tracks, start=1):
        table.add_row(
            str(idx),
            track.name,
            track.artist,
            track.album,
            format_duration(track.duration_ms),
            track.uri,
        )
    console.print(table)
    total_ms = sum(t.duration_ms for t in tracks)
    console.print(f"[dim]{len(tracks)} tracks, {format_duration(total_ms)} total[/dim]")


def _report_error(exc: SpotifyError) -> None:
    if isinstance(exc, TrackInsertionFailed):
        console.print(
            f"[bold yellow]Playlist created but only partly filled:[/bold yellow] "
            f"batch {exc.batch_index} of {exc.total_batches} failed, "
            f"{exc.inserted_batches} batch(es) were added."
        )
        if exc.playlist_url:
            console.print(f"[yellow]Playlist:[/yellow] {exc.playlist_url}")
    console.print(f"[bold red]Spotify error:[/bold red] {escape(str(exc))}")


@app.command("search")
def search(
    tags: List[str] = typer.Argument(None, help="Genre, mood or activity tags; the first one drives the search."),
    count: int = typer.Option(20, "--count", "-n", min=1, max=50, help="Number of tracks (1–50)."),
    save: Optional[str] = typer.Option(None, "--save", help="Save the result as a local draft with this title."),
) -> None:
    """
    Search Spotify for tracks matching the tags and render a table.
    """
    orchestrator = _orchestrator()
    try:
        with console.status("[bold cyan]Searching Spotify...[/bold cyan]"):
            result = generate_playlist(
                orchestrator,
                _credentials(),
                PlaylistRequest(genres=list(tags or []), track_count=count),
            )
    except SpotifyError as exc:
        _report_error(exc)
        raise typer.Exit(1)
    finally:
        orchestrator.close()

    query = result.tags[0] if result.tags else "pop"
    _render_tracks(f"Playlistify – {query!r}", result.tracks)

    if save:
        draft_id = library.save_draft(result.to_draft(save))
        console.print(f"[green]Saved draft:[/green] {draft_id}")


@app.command("create")
def create(
    title: str = typer.Argument(..., help="Playlist title."),
    tags: List[str] = typer.Argument(None, help="Genre, mood or activity tags."),
    count: int = typer.Option(20, "--count", "-n", min=1, max=50, help="Number of tracks (1–50)."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Playlist description."),
) -> None:
    """
    Search for tracks and publish them as a private playlist on Spotify.
    """
    orchestrator = _orchestrator()
    credentials = _credentials()
    try:
        with console.status("[bold cyan]Building your playlist...[/bold cyan]"):
            result = generate_playlist(
                orchestrator,
                credentials,
                PlaylistRequest(genres=list(tags or []), track_count=count),
            )
            url = publish_playlist(orchestrator, credentials, result.to_draft(title), description)
    except SpotifyError as exc:
        _report_error(exc)
        raise typer.Exit(1)
    finally:
        orchestrator.close()

    console.print(f"[bold green]Playlist created:[/bold green] {url}")


@app.command("publish")
def publish(draft_id: str = typer.Argument(..., help="ID of a saved draft (see `saved`).")) -> None:
    """
    Publish a saved draft to Spotify.
    """
    draft = library.load_draft(draft_id)
    if draft is None:
        console.print(f"[bold red]No saved draft named {draft_id!r}.[/bold red]")
        raise typer.Exit(1)

    orchestrator = _orchestrator()
    try:
        url = publish_playlist(orchestrator, _credentials(), draft)
    except SpotifyError as exc:
        _report_error(exc)
        raise typer.Exit(1)
    finally:
        orchestrator.close()

    console.print(f"[bold green]Playlist created:[/bold green] {url}")


@app.command("saved")
def saved() -> None:
    """
    List locally saved drafts.
    """
    drafts = library.list_drafts()
    if not drafts:
        console.print("[bold yellow]No saved drafts yet.[/bold yellow]")
        return

    table = Table(title="Saved drafts")
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Tracks", justify="right")
    table.add_column("Saved", style="dim")
    for d in drafts:
        table.add_row(d["id"], d["title"], str(d["track_count"]), d["saved_at"])
    console.print(table)


@app.command("delete")
def delete(draft_id: str = typer.Argument(..., help="ID of a saved draft (see `saved`).")) -> None:
    """
    Delete a locally saved draft.
    """
    if not library.delete_draft(draft_id):
        console.print(f"[bold red]No saved draft named {draft_id!r}.[/bold red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted draft:[/green] {draft_id}")


@app.command("whoami")
def whoami() -> None:
    """
    Show the Spotify account the configured credentials belong to.
    """
    orchestrator = _orchestrator()
    try:
        user = orchestrator.get_current_user(_credentials())
    except SpotifyError as exc:
        _report_error(exc)
        raise typer.Exit(1)
    finally:
        orchestrator.close()

    console.print(f"[bold cyan]{user.get('display_name') or user['id']}[/bold cyan] ({user['id']})")


@app.command("health")
def health() -> None:
    """
    Probe the configured Playlistify backend.
    """
    orchestrator = _orchestrator()
    try:
        ok = orchestrator.check_backend_health()
    finally:
        orchestrator.close()

    if ok:
        console.print("[black on green] BACKEND: HEALTHY [/]")
    else:
        console.print("[black on yellow] BACKEND: UNREACHABLE [/]")
        raise typer.Exit(1)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind the Playlistify API server to."),
    port: int = typer.Option(3001, help="Port to bind the Playlistify API server to."),
    reload: bool = typer.Option(False, help="Enable auto-reload (development only)."),
) -> None:
    """
    Run the Playlistify FastAPI backend.

    Example:
        playlistify serve --port 3001
    """
    uvicorn.run(
        "playlistify.api:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
