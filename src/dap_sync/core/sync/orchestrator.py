"""Device sync orchestrator.

Ties the sync components together into one pass and owns the state that
observers (CLI, monitor) read:

- SelectionResolver: which tracks belong on the device
- ChangelogMerger: play statistics in both directions
- FileSyncExecutor: orphans, copies and artwork
- PlaylistExporter: ``.m3u8`` files
- ThemeInstaller: ``.rockbox`` theme files

State moves ``IDLE -> PREPARING -> SYNCING -> terminal -> IDLE`` where the
terminal state is one of COMPLETED, PARTIALLY_FAILED, CANCELLED or ERROR.
At most one pass runs at a time.
"""

import logging
import threading
from dataclasses import dataclass, replace
from dataclasses import field as dataclass_field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List

from ...config import Config
from ...database.models import utc_now
from ...database.progress_tracker import (
    ProgressCallback,
    ProgressPhase,
    ProgressTracker,
    ProgressUpdate,
)
from ...database.service import DatabaseService
from ...database.settings import SyncSettings
from ..device.layout import DeviceLayout
from ..device.monitor import DeviceMonitor, is_mounted
from ..device.playlist_exporter import PlaylistExporter, PlaylistExportResult
from ..device.themes import ThemeInstaller, ThemeInstallResult
from .cancellation import CancellationToken
from .changelog_merger import ChangelogMerger, MergeResult
from .errors import (
    DeviceDisconnectedError,
    PassFatalError,
    SyncCancelledError,
    SyncConfigurationError,
    SyncError,
    SyncInProgressError,
)
from .file_sync import ExecutionResult, FileSyncExecutor
from .selection import SelectionResolver

logger = logging.getLogger(__name__)

DEVICE_NOT_CONNECTED = "Device not connected"
NO_MOUNT_PATH = "No device mount path configured"


class SyncState(str, Enum):
    """States of the sync state machine."""

    IDLE = "idle"
    PREPARING = "preparing"
    SYNCING = "syncing"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        """Whether a pass is running in this state."""
        return self in (SyncState.PREPARING, SyncState.SYNCING)


@dataclass
class SyncResult:
    """Result of one sync pass."""

    state: SyncState = SyncState.IDLE
    status_text: str = ""
    resolved_tracks: int = 0
    merge: MergeResult | None = None
    execution: ExecutionResult = dataclass_field(default_factory=ExecutionResult)
    changelog_entries_written: int | None = None
    playlists: PlaylistExportResult | None = None
    themes: ThemeInstallResult | None = None
    errors: List[str] = dataclass_field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        logger.error(error)

    def get_summary(self) -> dict[str, Any]:
        """Get summary of the sync pass."""
        summary: dict[str, Any] = {
            "state": self.state.value,
            "status": self.status_text,
            "resolved_tracks": self.resolved_tracks,
            "errors": len(self.errors) + len(self.execution.errors),
            "execution": self.execution.get_summary(),
        }

        if self.merge:
            summary["changelog_pull"] = self.merge.get_summary()

        if self.changelog_entries_written is not None:
            summary["changelog_push"] = {"entries": self.changelog_entries_written}

        if self.playlists:
            summary["playlists"] = {
                "written": len(self.playlists.written),
                "removed": len(self.playlists.removed),
            }

        if self.themes:
            summary["themes"] = {
                "installed": self.themes.themes_installed,
                "files": self.themes.files_copied,
            }

        return summary


@dataclass(frozen=True)
class SyncStatus:
    """Read-only snapshot of the orchestrator's observable state."""

    state: SyncState = SyncState.IDLE
    progress: float = 0.0
    status_text: str = ""
    last_error: str | None = None
    last_sync_at: datetime | None = None
    device_connected: bool = False
    last_result: SyncResult | None = None

    @property
    def is_syncing(self) -> bool:
        """Whether a pass is running."""
        return self.state.is_active


StatusListener = Callable[[SyncStatus], None]


class SyncOrchestrator:
    """Runs device sync passes and publishes their status.

    A pass runs either on a worker thread (``start``) or on the calling
    thread (``run_pass``). Status changes are published as immutable
    ``SyncStatus`` snapshots to subscribers.
    """

    def __init__(
        self,
        config: Config,
        db_service: DatabaseService,
        monitor: DeviceMonitor | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize sync orchestrator.

        Args:
            config: Application configuration
            db_service: Database service instance
            monitor: Optional device monitor; connect transitions trigger
                auto-sync when enabled
            progress_callback: Optional callback receiving every progress update
        """
        self.config = config
        self.db_service = db_service
        self.monitor = monitor
        self.progress_callback = progress_callback

        self._lock = threading.Lock()
        self._status = SyncStatus()
        self._listeners: List[StatusListener] = []
        self._cancel_token: CancellationToken | None = None
        self._worker: threading.Thread | None = None
        self._running = False

        if monitor is not None:
            self.attach_monitor(monitor)

    def attach_monitor(self, monitor: DeviceMonitor) -> None:
        """Follow connect/disconnect transitions reported by ``monitor``."""
        self.monitor = monitor
        monitor.add_listener(self._on_device_transition)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    def snapshot(self) -> SyncStatus:
        """Current status."""
        with self._lock:
            return self._status

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Receive every new status snapshot.

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set_status(self, **changes: Any) -> SyncStatus:
        with self._lock:
            self._status = replace(self._status, **changes)
            status = self._status
            listeners = list(self._listeners)
        self._publish(status, listeners)
        return status

    @staticmethod
    def _publish(status: SyncStatus, listeners: List[StatusListener]) -> None:
        for listener in listeners:
            try:
                listener(status)
            except Exception as e:
                logger.error("Status listener failed: %s", e, exc_info=True)

    def load_settings(self) -> SyncSettings:
        """Read sync settings, defaulting the mount path from configuration."""
        return self.db_service.load_sync_settings(
            SyncSettings(mount_path=self.config.default_mount_path)
        )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self, settings: SyncSettings | None = None) -> bool:
        """Start a pass on a worker thread.

        Args:
            settings: Settings for this pass; read from the store when omitted

        Returns:
            False if the pass could not start (already syncing, no mount
            path, or device not connected); the reason is logged and
            configuration problems are surfaced as ``last_error``
        """
        settings = settings or self.load_settings()
        try:
            token = self._claim(settings)
        except SyncError as e:
            logger.warning("Sync not started: %s", e)
            return False

        worker = threading.Thread(
            target=self._execute,
            args=(settings, token),
            name="dap-sync-worker",
            daemon=True,
        )
        with self._lock:
            self._worker = worker
        worker.start()
        return True

    def run_pass(self, settings: SyncSettings | None = None) -> SyncResult:
        """Run a pass on the calling thread.

        Raises:
            SyncInProgressError: If a pass is already running
            SyncConfigurationError: If the mount path is empty or not mounted
        """
        settings = settings or self.load_settings()
        token = self._claim(settings)
        return self._execute(settings, token)

    def cancel(self) -> bool:
        """Request cancellation of the running pass.

        Returns:
            True if a pass was running
        """
        with self._lock:
            token = self._cancel_token
        if token is None:
            return False
        logger.info("Cancellation requested")
        token.cancel()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the worker thread started by ``start``.

        Returns:
            True if no pass is running afterwards
        """
        with self._lock:
            worker = self._worker
        if worker is not None:
            worker.join(timeout)
            return not worker.is_alive()
        return True

    def _claim(self, settings: SyncSettings) -> CancellationToken:
        """Validate settings and move to PREPARING, atomically."""
        with self._lock:
            if self._running:
                raise SyncInProgressError()

            error: str | None = None
            connected = self._status.device_connected
            if not settings.mount_path.strip():
                error = NO_MOUNT_PATH
            elif not is_mounted(settings.mount_path):
                error = DEVICE_NOT_CONNECTED
                connected = False

            if error is not None:
                self._status = replace(
                    self._status, last_error=error, device_connected=connected
                )
            else:
                token = CancellationToken()
                self._cancel_token = token
                self._running = True
                self._status = replace(
                    self._status,
                    state=SyncState.PREPARING,
                    progress=0.0,
                    status_text="Preparing sync",
                    last_error=None,
                    device_connected=True,
                )
            status = self._status
            listeners = list(self._listeners)

        self._publish(status, listeners)
        if error is not None:
            raise SyncConfigurationError(error)
        return token

    def _on_device_transition(self, connected: bool, settings: SyncSettings) -> None:
        """Monitor listener: record connectivity and trigger auto-sync."""
        self._set_status(device_connected=connected)
        if not connected or not settings.auto_sync_enabled:
            return
        with self._lock:
            if self._running:
                return
        if not self.db_service.has_selections():
            logger.debug("Auto-sync skipped: nothing selected")
            return
        logger.info("Device connected, starting automatic sync")
        self.start(settings)

    def _on_progress(self, update: ProgressUpdate) -> None:
        if update.phase == ProgressPhase.COPYING:
            with self._lock:
                progress = max(self._status.progress, update.fraction)
            self._set_status(progress=progress)
        if self.progress_callback is not None:
            self.progress_callback(update)

    # ------------------------------------------------------------------
    # Pass
    # ------------------------------------------------------------------

    def _execute(self, settings: SyncSettings, token: CancellationToken) -> SyncResult:
        """Run the pass steps and record the terminal state."""
        result = SyncResult(started_at=utc_now())
        steps = ProgressTracker(callback=self._on_progress)
        logger.info("Starting sync to %s", settings.mount_path)

        try:
            self._run_steps(settings, token, result, steps)
        except SyncCancelledError:
            copied = result.execution.tracks_copied
            result.state = SyncState.CANCELLED
            result.status_text = f"Sync cancelled ({copied} tracks copied)"
        except PassFatalError as e:
            result.state = SyncState.ERROR
            result.status_text = str(e)
            result.add_error(str(e))
        except Exception as e:
            logger.exception("Unexpected error during sync")
            result.state = SyncState.ERROR
            result.status_text = f"Sync failed: {e}"
            result.add_error(result.status_text)

        if result.state == SyncState.ERROR:
            steps.error(result.status_text)
        else:
            steps.start(ProgressPhase.COMPLETE, 0, result.status_text)

        result.finished_at = utc_now()
        self._finish(result, settings)
        return result

    def _run_steps(
        self,
        settings: SyncSettings,
        token: CancellationToken,
        result: SyncResult,
        steps: ProgressTracker,
    ) -> None:
        layout = DeviceLayout(Path(settings.mount_path))

        def is_connected() -> bool:
            return is_mounted(settings.mount_path)

        def checkpoint(status_text: str, phase: ProgressPhase | None = None) -> None:
            token.raise_if_cancelled()
            if not is_connected():
                raise DeviceDisconnectedError()
            self._set_status(status_text=status_text)
            logger.info(status_text)
            # File steps report their own phases through the executor
            if phase is not None:
                steps.start(phase, 1, status_text)

        # Resolve
        steps.start(ProgressPhase.PREPARING, 1, "Resolving selections")
        resolver = SelectionResolver(self.db_service)
        resolved_ids = resolver.resolve(self.db_service.get_all_selections())
        result.resolved_tracks = len(resolved_ids)
        steps.complete(f"{len(resolved_ids)} tracks selected")
        if not resolved_ids:
            result.state = SyncState.COMPLETED
            result.status_text = "No tracks to sync"
            return
        records = resolver.load_records(resolved_ids)
        merger = ChangelogMerger(self.db_service, layout)

        # Pull changelog
        if settings.sync_play_counts_enabled:
            checkpoint(
                "Reading play counts from device", ProgressPhase.READING_CHANGELOG
            )
            result.merge = merger.pull_from_device(records)
            steps.complete(f"{result.merge.tracks_updated} tracks updated")
            records = resolver.load_records(resolved_ids)

        self._set_status(state=SyncState.SYNCING)
        executor = FileSyncExecutor(
            self.db_service, layout, progress_callback=self._on_progress
        )

        checkpoint("Removing orphaned tracks")
        executor.remove_orphans(resolved_ids, result.execution)

        checkpoint(f"Copying tracks ({len(records)} selected)")
        executor.copy_tracks(records, token, is_connected, result.execution)

        checkpoint("Copying album artwork")
        executor.sync_artwork(records, result.execution)

        # Sync log entries and statistics changed above
        records = resolver.load_records(resolved_ids)

        if settings.sync_play_counts_enabled:
            checkpoint("Writing play counts to device", ProgressPhase.WRITING_CHANGELOG)
            result.changelog_entries_written = merger.push_to_device(records)
            steps.complete(f"{result.changelog_entries_written} entries written")

        if settings.sync_playlists_enabled:
            checkpoint("Exporting playlists", ProgressPhase.EXPORTING_PLAYLISTS)
            logs_by_track: Dict[int, str] = {
                record.track_id: record.sync_log.device_path
                for record in records
                if record.sync_log is not None
            }
            exporter = PlaylistExporter(self.db_service, layout)
            try:
                result.playlists = exporter.export_all(
                    resolved_ids, logs_by_track, token
                )
            except OSError as e:
                result.add_error(f"Playlist export failed: {e}")
            steps.complete()

        if settings.sync_themes_enabled:
            installer = ThemeInstaller(self.config.themes_directory, layout)
            if installer.available_themes():
                checkpoint("Installing themes", ProgressPhase.INSTALLING_THEMES)
                try:
                    result.themes = installer.install_all()
                except OSError as e:
                    result.add_error(f"Theme install failed: {e}")
                steps.complete()

        # Finalize
        execution = result.execution
        if execution.tracks_failed:
            result.state = SyncState.PARTIALLY_FAILED
            result.status_text = (
                f"Synced {execution.tracks_copied} tracks "
                f"({execution.tracks_failed} failed)"
            )
        elif execution.tracks_copied == 0:
            result.state = SyncState.COMPLETED
            result.status_text = f"Already up to date ({len(records)} tracks)"
        else:
            result.state = SyncState.COMPLETED
            result.status_text = f"Synced {execution.tracks_copied} tracks"

    def _finish(self, result: SyncResult, settings: SyncSettings) -> None:
        """Publish the terminal state, then return to IDLE."""
        succeeded = result.state in (SyncState.COMPLETED, SyncState.PARTIALLY_FAILED)
        changes: Dict[str, Any] = {
            "state": result.state,
            "status_text": result.status_text,
            "last_result": result,
        }
        if succeeded:
            changes["progress"] = 1.0
            changes["last_sync_at"] = result.finished_at
        if result.state == SyncState.ERROR:
            changes["last_error"] = result.status_text
            if not is_mounted(settings.mount_path):
                changes["device_connected"] = False

        logger.info("Sync finished: %s", result.status_text)
        self._set_status(**changes)

        with self._lock:
            self._cancel_token = None
            self._running = False
            self._status = replace(self._status, state=SyncState.IDLE)
            status = self._status
            listeners = list(self._listeners)
        self._publish(status, listeners)
