"""Selection commands: choose what goes on the device."""

import logging
from typing import Any, Dict, List, Optional

import click
from rich.console import Console

from ...config import Config
from ...core.sync import SelectionResolver
from ...database import DatabaseService, SelectionKind, SyncSelection
from ..display import display_selections
from .init import InitializationError, init_db

console = Console()
logger = logging.getLogger(__name__)

KIND_CHOICE = click.Choice([kind.value for kind in SelectionKind])


def _open_db() -> DatabaseService:
    try:
        return init_db(Config())
    except InitializationError as e:
        raise click.ClickException(str(e))


def _target_name(
    db_service: DatabaseService, kind: SelectionKind, target_id: int
) -> Optional[str]:
    """Display name of a selection target, or None if it no longer exists."""
    if kind == SelectionKind.TRACK:
        track = db_service.get_track_by_id(target_id)
        return track.title if track else None
    if kind == SelectionKind.ALBUM:
        album = db_service.get_album_by_id(target_id)
        return album.title if album else None
    artist = db_service.get_artist_by_id(target_id)
    return artist.name if artist else None


@click.group("select")
def select_group() -> None:
    """Choose tracks, albums and artists for the device."""
    pass


@select_group.command(name="add")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("target_id", type=int)
def select_add(kind: str, target_id: int) -> None:
    """Select a track, album or artist by ID.

    Examples:
        dap-sync select add album 12
    """
    db_service = _open_db()
    selection_kind = SelectionKind(kind)

    name = _target_name(db_service, selection_kind, target_id)
    if name is None:
        raise click.ClickException(f"No {kind} with ID {target_id}")

    if db_service.add_selection(selection_kind, target_id):
        console.print(f"[green]✓ Selected {kind} '{name}'[/green]")
    else:
        console.print(f"[yellow]{kind.title()} '{name}' is already selected[/yellow]")


@select_group.command(name="remove")
@click.argument("kind", type=KIND_CHOICE)
@click.argument("target_id", type=int)
def select_remove(kind: str, target_id: int) -> None:
    """Remove a selection. Its tracks leave the device on the next sync."""
    db_service = _open_db()
    if db_service.remove_selection(SelectionKind(kind), target_id):
        console.print(f"[green]✓ Removed {kind} {target_id} from selection[/green]")
    else:
        raise click.ClickException(f"{kind} {target_id} is not selected")


@select_group.command(name="list")
def select_list() -> None:
    """List selections and how many tracks each one covers."""
    db_service = _open_db()
    resolver = SelectionResolver(db_service)

    rows: List[Dict[str, Any]] = []
    selections: List[SyncSelection] = db_service.get_all_selections()
    for selection in selections:
        kind = SelectionKind(selection.kind)
        rows.append(
            {
                "kind": kind.value,
                "id": selection.target_id,
                "name": _target_name(db_service, kind, selection.target_id),
                "tracks": len(resolver.resolve([selection])),
            }
        )

    display_selections(rows)
    if selections:
        total = len(resolver.resolve(selections))
        console.print(f"\n[bold]{total}[/bold] tracks selected in total")


@select_group.command(name="prune")
def select_prune() -> None:
    """Remove selections whose tracks have all been deleted."""
    db_service = _open_db()
    removed = db_service.prune_empty_selections()
    console.print(f"[green]✓ Removed {removed} empty selection(s)[/green]")
