"""Settings commands: show and change device sync settings."""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

import click
from rich.console import Console

from ...config import Config
from ...database import SyncSettings
from ..display import display_settings
from .init import InitializationError, init_db

console = Console()
logger = logging.getLogger(__name__)


@click.group("settings")
def settings_group() -> None:
    """Show or change device sync settings."""
    pass


@settings_group.command(name="show")
def settings_show() -> None:
    """Show the current device sync settings."""
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        raise click.ClickException(str(e))

    settings = db_service.load_sync_settings(
        SyncSettings(mount_path=config.default_mount_path)
    )
    display_settings(settings)


@settings_group.command(name="set")
@click.option("--mount-path", type=str, help="Directory where the device is mounted")
@click.option(
    "--auto-sync/--no-auto-sync",
    default=None,
    help="Sync automatically when the device is connected",
)
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    help="Seconds between device connection checks",
)
@click.option(
    "--play-counts/--no-play-counts",
    default=None,
    help="Merge play counts and favorites with the device",
)
@click.option(
    "--playlists/--no-playlists", default=None, help="Export playlists to the device"
)
@click.option("--themes/--no-themes", default=None, help="Install Rockbox themes")
def settings_set(
    mount_path: Optional[str],
    auto_sync: Optional[bool],
    interval: Optional[int],
    play_counts: Optional[bool],
    playlists: Optional[bool],
    themes: Optional[bool],
) -> None:
    """Change device sync settings; options not given keep their value.

    Examples:
        dap-sync settings set --mount-path /media/IPOD --auto-sync
    """
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        raise click.ClickException(str(e))

    changes: Dict[str, Any] = {}
    if mount_path is not None:
        changes["mount_path"] = mount_path
    if auto_sync is not None:
        changes["auto_sync_enabled"] = auto_sync
    if interval is not None:
        changes["polling_interval_seconds"] = interval
    if play_counts is not None:
        changes["sync_play_counts_enabled"] = play_counts
    if playlists is not None:
        changes["sync_playlists_enabled"] = playlists
    if themes is not None:
        changes["sync_themes_enabled"] = themes

    if not changes:
        raise click.UsageError("Nothing to change; see 'dap-sync settings set --help'")

    current = db_service.load_sync_settings(
        SyncSettings(mount_path=config.default_mount_path)
    )
    updated = replace(current, **changes)
    db_service.save_sync_settings(updated)
    logger.info("Updated sync settings: %s", ", ".join(sorted(changes)))

    console.print("[green]✓ Settings saved[/green]\n")
    display_settings(updated)
