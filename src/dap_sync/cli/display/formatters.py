"""Display formatters and UI helpers for CLI."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from ...core.library import ScanStatistics
from ...core.sync import SyncResult, SyncState
from ...database import SyncSettings

console = Console()
logger = logging.getLogger(__name__)

_STATE_STYLES = {
    SyncState.COMPLETED: ("green", "✓"),
    SyncState.PARTIALLY_FAILED: ("yellow", "⚠️"),
    SyncState.CANCELLED: ("yellow", "■"),
    SyncState.ERROR: ("red", "✗"),
}


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a naive UTC timestamp for display."""
    if value is None:
        return "never"
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def display_sync_result(result: SyncResult) -> None:
    """Display the outcome of a sync pass.

    Args:
        result: Result returned by the orchestrator
    """
    style, icon = _STATE_STYLES.get(result.state, ("cyan", "•"))
    console.print(f"\n[bold {style}]{icon} {result.status_text}[/bold {style}]\n")

    summary = result.get_summary()
    execution = summary["execution"]

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", width=30)
    table.add_column("Value", style="green", justify="right")

    table.add_row("Selected Tracks", str(summary["resolved_tracks"]))
    table.add_row("Tracks Copied", str(execution["tracks_copied"]))
    table.add_row("Tracks Up To Date", str(execution["tracks_skipped"]))
    if execution["tracks_failed"]:
        table.add_row("Tracks Failed", f"[red]{execution['tracks_failed']}[/red]")
    table.add_row("Orphans Removed", str(execution["orphans_removed"]))
    table.add_row("Directories Pruned", str(execution["directories_pruned"]))
    table.add_row("Artwork Copied", str(execution["artwork_copied"]))

    if "changelog_pull" in summary:
        table.add_row(
            "Play Stats Merged", str(summary["changelog_pull"]["tracks_updated"])
        )
    if "changelog_push" in summary:
        table.add_row(
            "Changelog Entries Written", str(summary["changelog_push"]["entries"])
        )
    if "playlists" in summary:
        table.add_row("Playlists Written", str(summary["playlists"]["written"]))
        table.add_row("Stale Playlists Removed", str(summary["playlists"]["removed"]))
    if "themes" in summary:
        table.add_row("Themes Installed", str(summary["themes"]["installed"]))

    console.print(table)

    errors = result.errors + result.execution.errors
    if errors:
        console.print(f"\n[red]⚠️  {len(errors)} error(s) occurred:[/red]")
        for error in errors[:10]:
            console.print(f"  • {error}")
        if len(errors) > 10:
            console.print(f"  ... and {len(errors) - 10} more")


def display_settings(settings: SyncSettings) -> None:
    """Display device sync settings."""

    def on_off(value: bool) -> str:
        return "[green]on[/green]" if value else "[dim]off[/dim]"

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Mount Path", settings.mount_path or "[red]not set[/red]")
    table.add_row("Auto Sync", on_off(settings.auto_sync_enabled))
    table.add_row("Polling Interval", f"{settings.polling_interval_seconds}s")
    table.add_row("Sync Play Counts", on_off(settings.sync_play_counts_enabled))
    table.add_row("Export Playlists", on_off(settings.sync_playlists_enabled))
    table.add_row("Install Themes", on_off(settings.sync_themes_enabled))

    console.print(table)


def display_scan_statistics(stats: ScanStatistics) -> None:
    """Display library scan statistics."""
    data = stats.to_dict()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")

    table.add_row("Files Found", str(data["files_found"]))
    table.add_row("Tracks Created", str(data["tracks_created"]))
    table.add_row("Tracks Updated", str(data["tracks_updated"]))
    table.add_row("Tracks Removed", str(data["tracks_removed"]))
    if data["error_count"]:
        table.add_row("Errors", f"[red]{data['error_count']}[/red]")

    console.print(table)

    for error in data["errors"]:
        console.print(f"  • {error}")


def display_selections(rows: Sequence[Dict[str, Any]]) -> None:
    """Display sync selections.

    Args:
        rows: Dictionaries with ``kind``, ``id``, ``name`` and ``tracks`` keys
    """
    if not rows:
        console.print("[yellow]Nothing selected for the device[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Kind", style="cyan")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    table.add_column("Tracks", style="green", justify="right")

    for row in rows:
        name = row["name"] if row["name"] is not None else "[red]missing[/red]"
        table.add_row(row["kind"], str(row["id"]), name, str(row["tracks"]))

    console.print(table)


def display_status(
    settings: SyncSettings,
    connected: bool,
    stats: Dict[str, int],
    last_sync_at: Optional[datetime],
) -> None:
    """Display device connection and library overview."""
    device = (
        "[green]connected[/green]" if connected else "[yellow]not connected[/yellow]"
    )

    table = Table(show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value")

    table.add_row("Device", f"{settings.mount_path} ({device})")
    table.add_row("Tracks In Library", str(stats["tracks"]))
    table.add_row("Selections", str(stats["selections"]))
    table.add_row("Tracks On Device", str(stats["synced_tracks"]))
    table.add_row("Last Sync", format_timestamp(last_sync_at))

    console.print(table)


def build_table(title: str, columns: List[str], rows: List[List[str]]) -> Table:
    """Build a simple table with the first column styled as an identifier."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    for i, column in enumerate(columns):
        table.add_column(column, style="cyan" if i == 0 else None)
    for row in rows:
        table.add_row(*row)
    return table
