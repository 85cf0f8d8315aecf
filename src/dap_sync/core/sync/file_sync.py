"""File transfer between the library and the device.

Copies new and changed tracks, removes orphans, prunes empty directories and
places album artwork. All work happens sequentially on the calling thread;
store writes are issued only after the corresponding file operation finished.
"""

import logging
import shutil
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set

from ...database.progress_tracker import (
    ProgressCallback,
    ProgressPhase,
    ProgressTracker,
)
from ...database.service import DatabaseService
from ..device.fileops import prune_empty_directories, remove_file
from ..device.layout import DeviceLayout
from .cancellation import CancellationToken
from .errors import DeviceDisconnectedError, SourceFileMissingError, TrackSyncError
from .selection import TrackSyncRecord

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Counters for the file operations of one sync pass."""

    tracks_copied: int = 0
    tracks_failed: int = 0
    tracks_skipped: int = 0
    orphans_removed: int = 0
    directories_pruned: int = 0
    artwork_copied: int = 0
    errors: List[str] = dataclass_field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)
        logger.error(error)

    def get_summary(self) -> Dict[str, int]:
        """Get summary statistics."""
        return {
            "tracks_copied": self.tracks_copied,
            "tracks_failed": self.tracks_failed,
            "tracks_skipped": self.tracks_skipped,
            "orphans_removed": self.orphans_removed,
            "directories_pruned": self.directories_pruned,
            "artwork_copied": self.artwork_copied,
            "errors": len(self.errors),
        }


class FileSyncExecutor:
    """Performs the filesystem side of a sync pass for one mounted device."""

    def __init__(
        self,
        db_service: DatabaseService,
        layout: DeviceLayout,
        progress_callback: ProgressCallback | None = None,
    ):
        """Initialize executor.

        Args:
            db_service: Library store holding the sync log
            layout: Layout of the mounted device
            progress_callback: Optional callback for copy progress updates
        """
        self.db_service = db_service
        self.layout = layout
        self.progress_tracker = ProgressTracker(callback=progress_callback)

    # ------------------------------------------------------------------
    # Orphans
    # ------------------------------------------------------------------

    def remove_orphans(
        self, resolved_ids: Set[int], result: Optional[ExecutionResult] = None
    ) -> int:
        """Delete device files and sync log rows of tracks no longer selected.

        A file that is already gone is not an error. Any other failure is
        recorded and the log row is kept so the next pass retries it.

        Args:
            resolved_ids: Track ids that belong on the device
            result: Optional result receiving counters and errors

        Returns:
            Number of orphans removed
        """
        result = result if result is not None else ExecutionResult()
        logs = self.db_service.get_all_sync_logs()
        live_paths = {log.device_path for log in logs if log.track_id in resolved_ids}
        orphans = [log for log in logs if log.track_id not in resolved_ids]

        self.progress_tracker.start(
            ProgressPhase.REMOVING_ORPHANS, len(orphans), "Removing orphaned tracks"
        )

        removed = 0
        for log in orphans:
            if log.device_path not in live_paths:
                try:
                    remove_file(self.layout.resolve(log.device_path))
                except OSError as e:
                    result.add_error(f"Failed to remove {log.device_path}: {e}")
                    self.progress_tracker.update()
                    continue

            self.db_service.delete_sync_log(log.track_id)
            removed += 1
            logger.debug("Removed orphan: %s", log.device_path)
            self.progress_tracker.update()

        result.orphans_removed += removed
        result.directories_pruned += self.prune_empty_directories()
        self.progress_tracker.complete(f"Removed {removed} orphans")
        return removed

    def prune_empty_directories(self) -> int:
        """Remove empty directories under the device's music root."""
        pruned = prune_empty_directories(self.layout.music_dir)
        if pruned:
            logger.info("Pruned %d empty directories", pruned)
        return pruned

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------

    @staticmethod
    def current_size(record: TrackSyncRecord) -> Optional[int]:
        """Size of the source file, or the stored size if it is unreadable."""
        try:
            return Path(record.file_path).stat().st_size
        except OSError:
            return record.file_size

    def needs_copy(self, record: TrackSyncRecord) -> bool:
        """Whether a track must be (re)copied.

        True when the track was never synced or its size differs from the
        size recorded at the last sync. A same-size content change goes
        unnoticed.
        """
        if record.sync_log is None:
            return True
        return self.current_size(record) != record.sync_log.file_size

    def copy_tracks(
        self,
        records: Sequence[TrackSyncRecord],
        cancel_token: Optional[CancellationToken] = None,
        is_connected: Optional[Callable[[], bool]] = None,
        result: Optional[ExecutionResult] = None,
    ) -> ExecutionResult:
        """Copy every track that needs it.

        Cancellation and device connectivity are checked before each copy.
        Tracks copied before an abort keep their sync log entries.

        Args:
            records: Resolved tracks in device order
            cancel_token: Token checked before each copy
            is_connected: Returns False once the device is gone
            result: Optional result to accumulate into

        Returns:
            ExecutionResult with copy counters

        Raises:
            SyncCancelledError: If cancellation was requested
            DeviceDisconnectedError: If the device went away
        """
        result = result if result is not None else ExecutionResult()
        pending = [record for record in records if self.needs_copy(record)]
        result.tracks_skipped += len(records) - len(pending)

        self.progress_tracker.start(
            ProgressPhase.COPYING, len(pending), f"Copying {len(pending)} tracks"
        )

        for i, record in enumerate(pending):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            if is_connected is not None and not is_connected():
                raise DeviceDisconnectedError()

            try:
                device_path = self.copy_track(record)
                result.tracks_copied += 1
                message = device_path
            except TrackSyncError as e:
                result.tracks_failed += 1
                result.add_error(str(e))
                message = f"Failed: {record.title}"
            except OSError as e:
                if is_connected is not None and not is_connected():
                    raise DeviceDisconnectedError() from e
                result.tracks_failed += 1
                result.add_error(f"Failed to copy '{record.title}': {e}")
                message = f"Failed: {record.title}"

            self.progress_tracker.update(current=i + 1, message=message)

        self.progress_tracker.complete(
            f"Copied {result.tracks_copied}, failed {result.tracks_failed}"
        )
        return result

    def copy_track(self, record: TrackSyncRecord) -> str:
        """Copy one track and record it in the sync log.

        Returns:
            Device path the track was written to

        Raises:
            SourceFileMissingError: If the library file does not exist
            OSError: If the copy fails
        """
        source = Path(record.file_path)
        if not source.is_file():
            raise SourceFileMissingError(
                record.track_id, f"Source file missing: {record.file_path}"
            )

        device_path = record.device_path()
        destination = self.layout.resolve(device_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        remove_file(destination)
        shutil.copyfile(source, destination)

        self.db_service.replace_sync_log(
            record.track_id, device_path, source.stat().st_size
        )
        logger.debug("Copied %s -> %s", source, device_path)

        previous = record.sync_log.device_path if record.sync_log else None
        if previous and previous != device_path:
            if self.db_service.is_device_path_logged(previous, record.track_id):
                logger.debug("Keeping %s, still logged for another track", previous)
                return device_path
            try:
                remove_file(self.layout.resolve(previous))
            except OSError as e:
                logger.warning("Could not remove previous copy %s: %s", previous, e)

        return device_path

    # ------------------------------------------------------------------
    # Artwork
    # ------------------------------------------------------------------

    def sync_artwork(
        self,
        records: Sequence[TrackSyncRecord],
        result: Optional[ExecutionResult] = None,
    ) -> int:
        """Place album covers that are not on the device yet.

        Covers already on the device are never overwritten.

        Returns:
            Number of covers copied
        """
        result = result if result is not None else ExecutionResult()
        albums: Dict[int, TrackSyncRecord] = {}
        for record in records:
            if record.album_id is not None and record.album_artwork_path:
                albums.setdefault(record.album_id, record)

        self.progress_tracker.start(
            ProgressPhase.COPYING_ARTWORK, len(albums), "Copying album artwork"
        )

        copied = 0
        for record in albums.values():
            source = Path(record.album_artwork_path or "")
            destination = self.layout.resolve(record.artwork_device_path())
            if source.is_file() and not destination.exists():
                try:
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(source, destination)
                    copied += 1
                    logger.debug("Copied artwork to %s", destination)
                except OSError as e:
                    result.add_error(f"Failed to copy artwork {source}: {e}")
            self.progress_tracker.update()

        result.artwork_copied += copied
        self.progress_tracker.complete(f"Copied {copied} covers")
        return copied
