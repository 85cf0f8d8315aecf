"""CLI command modules."""

from .init import InitializationError, init_command, init_db
from .library import library_group
from .selection import select_group
from .sync import status_command, sync_command, watch_command
from .sync_settings import settings_group

__all__ = [
    "InitializationError",
    "init_command",
    "init_db",
    "library_group",
    "select_group",
    "settings_group",
    "status_command",
    "sync_command",
    "watch_command",
]
