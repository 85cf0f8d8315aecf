"""Device commands: one-off sync, watch mode and status."""

import logging
import threading
from dataclasses import replace
from typing import Optional

import click
from rich.console import Console

from ...config import Config
from ...core.device import DeviceMonitor, is_mounted
from ...core.sync import SyncOrchestrator, SyncState, SyncStatus
from ...database import (
    ConsoleProgressReporter,
    ProgressCallback,
    RichProgressReporter,
)
from ..display import display_status, display_sync_result
from .init import InitializationError, init_db

console = Console()
logger = logging.getLogger(__name__)

_WAIT_STEP_SECONDS = 0.2


def _build_orchestrator() -> SyncOrchestrator:
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        raise click.ClickException(str(e))
    return SyncOrchestrator(config=config, db_service=db_service)


def _progress_reporter(progress: bool, verbose: bool) -> Optional[ProgressCallback]:
    """Progress display for a sync run, or None when it is switched off."""
    if progress:
        return RichProgressReporter(console)
    if verbose:
        return ConsoleProgressReporter(console, verbose=True)
    return None


def _wait_for_pass(orchestrator: SyncOrchestrator) -> None:
    """Block until the running pass ends; Ctrl+C requests cancellation."""
    try:
        while not orchestrator.wait(_WAIT_STEP_SECONDS):
            pass
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelling after the current file...[/yellow]")
        orchestrator.cancel()
        orchestrator.wait()


@click.command("sync")
@click.option(
    "--mount-path",
    type=click.Path(),
    help="Sync to this directory instead of the configured mount path",
)
@click.option(
    "--progress/--no-progress",
    default=True,
    help="Show progress bars",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Print every progress update (with --no-progress)",
)
def sync_command(mount_path: Optional[str], progress: bool, verbose: bool) -> None:
    """Run one sync pass to the device.

    Copies new and changed tracks, removes deselected ones, merges play
    counts and exports playlists according to the saved settings.

    Examples:
        dap-sync sync
        dap-sync sync --mount-path /media/$USER/ROCKBOX
        dap-sync sync --no-progress --verbose
    """
    orchestrator = _build_orchestrator()
    settings = orchestrator.load_settings()
    if mount_path is not None:
        settings = replace(settings, mount_path=mount_path)

    console.print(f"\n[bold cyan]🔄 Syncing to {settings.mount_path}[/bold cyan]\n")

    reporter = _progress_reporter(progress, verbose)
    orchestrator.progress_callback = reporter
    try:
        started = orchestrator.start(settings)
        if started:
            _wait_for_pass(orchestrator)
    finally:
        if isinstance(reporter, RichProgressReporter):
            reporter.close()

    if not started:
        reason = orchestrator.snapshot().last_error or "A sync is already running"
        raise click.ClickException(reason)

    result = orchestrator.snapshot().last_result
    if result is None:
        raise click.ClickException("Sync finished without a result")

    display_sync_result(result)
    if result.state == SyncState.ERROR:
        raise click.ClickException(result.status_text)


@click.command("watch")
def watch_command() -> None:
    """Watch for the device and sync automatically when it is connected.

    Auto-sync must be enabled (``dap-sync settings set --auto-sync``).
    Press Ctrl+C to stop.
    """
    orchestrator = _build_orchestrator()
    monitor = DeviceMonitor(orchestrator.load_settings)
    monitor.add_listener(
        lambda connected, current: console.print(
            f"[cyan]Device {'connected' if connected else 'disconnected'}: "
            f"{current.mount_path}[/cyan]"
        )
    )
    orchestrator.attach_monitor(monitor)

    settings = orchestrator.load_settings()
    if not settings.auto_sync_enabled:
        console.print(
            "[yellow]Auto-sync is off; connections will be reported only[/yellow]"
        )

    last_text = {"value": ""}

    def report(status: SyncStatus) -> None:
        if status.status_text and status.status_text != last_text["value"]:
            last_text["value"] = status.status_text
            console.print(f"  {status.status_text}")

    orchestrator.subscribe(report)

    console.print(
        f"[bold cyan]👀 Watching {settings.mount_path} every "
        f"{settings.polling_interval_seconds}s (Ctrl+C to stop)[/bold cyan]"
    )
    monitor.start()
    stop = threading.Event()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping...[/yellow]")
    finally:
        monitor.stop()
        if orchestrator.cancel():
            orchestrator.wait()


@click.command("status")
def status_command() -> None:
    """Show device connection and library status."""
    config = Config()
    try:
        db_service = init_db(config)
    except InitializationError as e:
        raise click.ClickException(str(e))

    orchestrator = SyncOrchestrator(config=config, db_service=db_service)
    settings = orchestrator.load_settings()
    logs = db_service.get_all_sync_logs()
    last_sync_at = max((log.synced_at for log in logs), default=None)

    display_status(
        settings,
        is_mounted(settings.mount_path),
        db_service.get_statistics(),
        last_sync_at,
    )
