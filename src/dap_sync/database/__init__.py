"""Database package for the music library and device sync state.

Pure database layer: models, the database service, persisted sync settings and
progress tracking. Sync logic lives in the core package.
"""

from .models import (
    Album,
    Artist,
    Playlist,
    PlaylistTrack,
    SelectionKind,
    SmartPlaylist,
    SmartPlaylistField,
    SmartPlaylistOperator,
    SmartPlaylistRule,
    SyncLogEntry,
    SyncSelection,
    SyncSetting,
    Track,
)
from .progress_tracker import (
    ConsoleProgressReporter,
    ProgressCallback,
    ProgressPhase,
    ProgressTracker,
    ProgressUpdate,
    RichProgressReporter,
)
from .service import DatabaseService
from .settings import SyncSettings

__all__ = [
    # Models
    "Artist",
    "Album",
    "Track",
    "Playlist",
    "PlaylistTrack",
    "SmartPlaylist",
    "SmartPlaylistRule",
    "SyncSelection",
    "SyncLogEntry",
    "SyncSetting",
    # Enums
    "SelectionKind",
    "SmartPlaylistField",
    "SmartPlaylistOperator",
    # Database service
    "DatabaseService",
    "SyncSettings",
    # Progress tracking
    "ProgressTracker",
    "ProgressPhase",
    "ProgressUpdate",
    "ProgressCallback",
    "ConsoleProgressReporter",
    "RichProgressReporter",
]
