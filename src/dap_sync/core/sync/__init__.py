"""Device sync engine.

Resolves selections, merges play statistics, copies files and exports
playlists under the control of the sync orchestrator.
"""

from .cancellation import CancellationToken
from .changelog_merger import ChangelogMerger, MergeResult
from .errors import (
    ChangelogWriteError,
    DeviceDisconnectedError,
    PassFatalError,
    SourceFileMissingError,
    SyncCancelledError,
    SyncConfigurationError,
    SyncError,
    SyncInProgressError,
    TrackSyncError,
)
from .file_sync import ExecutionResult, FileSyncExecutor
from .orchestrator import SyncOrchestrator, SyncResult, SyncState, SyncStatus
from .selection import SelectionResolver, SyncLogSnapshot, TrackSyncRecord

__all__ = [
    # Selection
    "SelectionResolver",
    "SyncLogSnapshot",
    "TrackSyncRecord",
    # Statistics
    "ChangelogMerger",
    "MergeResult",
    # Files
    "ExecutionResult",
    "FileSyncExecutor",
    # Orchestration
    "CancellationToken",
    "SyncOrchestrator",
    "SyncResult",
    "SyncState",
    "SyncStatus",
    # Errors
    "SyncError",
    "SyncConfigurationError",
    "SyncInProgressError",
    "TrackSyncError",
    "SourceFileMissingError",
    "PassFatalError",
    "DeviceDisconnectedError",
    "ChangelogWriteError",
    "SyncCancelledError",
]
