"""Exceptions raised by the device sync engine.

Four classes of failure are kept apart:

- ``SyncConfigurationError``: the pass cannot start (no mount path, device
  not mounted).
- ``TrackSyncError``: one track failed; counted and reported, the pass goes on.
- ``PassFatalError``: the remaining steps are abandoned; work already
  committed (copied files and their sync log rows) is kept.
- ``SyncCancelledError``: the user asked to stop.

Best-effort cleanup (an orphan file already gone, artwork already present,
no changelog on the device) is not an error and raises nothing.
"""


class SyncError(Exception):
    """Base class for device sync errors."""

    pass


class SyncConfigurationError(SyncError):
    """The sync pass cannot start with the current settings or device state."""

    pass


class TrackSyncError(SyncError):
    """A single track could not be synced."""

    def __init__(self, track_id: int, message: str):
        super().__init__(message)
        self.track_id = track_id


class SourceFileMissingError(TrackSyncError):
    """The library file backing a track does not exist."""

    pass


class PassFatalError(SyncError):
    """An error that aborts the rest of the sync pass."""

    pass


class DeviceDisconnectedError(PassFatalError):
    """The device went away while a pass was running."""

    def __init__(self, message: str = "Device disconnected during sync"):
        super().__init__(message)


class ChangelogWriteError(PassFatalError):
    """The play statistics changelog could not be written to the device."""

    pass


class SyncCancelledError(SyncError):
    """The pass was cancelled between units of work."""

    def __init__(self, message: str = "Sync cancelled"):
        super().__init__(message)


class SyncInProgressError(SyncError):
    """A sync pass is already running."""

    def __init__(self, message: str = "A sync is already in progress"):
        super().__init__(message)
