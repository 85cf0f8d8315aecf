"""Library commands: import audio files and browse what is in the store."""

import logging
from pathlib import Path

import click
from rich.console import Console

from ...config import Config
from ...core.library import LibraryScanner
from ..display import build_table, display_scan_statistics
from .init import InitializationError, init_db

console = Console()
logger = logging.getLogger(__name__)


@click.group("library")
def library_group() -> None:
    """Manage the local music library."""
    pass


@library_group.command(name="scan")
@click.argument(
    "path", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
def library_scan(path: Path) -> None:
    """Import audio files below PATH into the library.

    Re-scanning a directory updates existing tracks and forgets tracks whose
    files are gone.

    Examples:
        dap-sync library scan ~/Music
    """
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        raise click.ClickException(str(e))

    console.print(f"\n[bold cyan]📂 Scanning library: {path}[/bold cyan]\n")

    try:
        scanner = LibraryScanner(db_service, config.audio_extensions)
        stats = scanner.scan(path)
    except Exception as e:
        logger.exception("Scan failed")
        console.print(f"\n[red]✗ Scan failed: {e}[/red]")
        raise click.ClickException(str(e))

    console.print("[green]✓ Library scanned successfully[/green]\n")
    display_scan_statistics(stats)


@library_group.command(name="list")
@click.option(
    "--artists", "what", flag_value="artists", help="List artists instead of tracks"
)
@click.option(
    "--albums", "what", flag_value="albums", help="List albums instead of tracks"
)
def library_list(what: str | None) -> None:
    """List tracks, albums or artists with their IDs.

    The IDs are what ``dap-sync select add`` expects.
    """
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        raise click.ClickException(str(e))

    if what == "artists":
        rows = [[str(a.id), a.name] for a in db_service.get_all_artists()]
        table = build_table("Artists", ["ID", "Name"], rows)
    elif what == "albums":
        artists = {a.id: a.name for a in db_service.get_all_artists()}
        rows = [
            [str(a.id), a.title, artists.get(a.artist_id, "") if a.artist_id else ""]
            for a in db_service.get_all_albums()
        ]
        table = build_table("Albums", ["ID", "Title", "Artist"], rows)
    else:
        rows = [
            [
                str(t.id),
                t.title,
                str(t.track_number or ""),
                str(t.play_count),
                "★" if t.is_favorite else "",
            ]
            for t in db_service.get_all_tracks()
        ]
        table = build_table("Tracks", ["ID", "Title", "#", "Plays", "Fav"], rows)

    if not rows:
        console.print("[yellow]Library is empty[/yellow]")
        return
    console.print(table)
