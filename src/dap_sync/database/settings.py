"""Persisted device sync settings."""

import logging
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping

logger = logging.getLogger(__name__)

DEFAULT_MOUNT_PATH = "/Volumes/ROCKBOX"
DEFAULT_POLLING_INTERVAL_SECONDS = 10

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass(frozen=True)
class SyncSettings:
    """User-controlled device sync configuration.

    Stored as key/value rows in the ``sync_settings`` table and read at the
    start of every poll and every sync pass.
    """

    mount_path: str = DEFAULT_MOUNT_PATH
    auto_sync_enabled: bool = False
    polling_interval_seconds: int = DEFAULT_POLLING_INTERVAL_SECONDS
    sync_play_counts_enabled: bool = True
    sync_playlists_enabled: bool = True
    sync_themes_enabled: bool = False

    @classmethod
    def from_rows(
        cls, rows: Mapping[str, str], defaults: "SyncSettings | None" = None
    ) -> "SyncSettings":
        """Build settings from stored key/value rows.

        Unknown keys are ignored and unparsable values keep their default.

        Args:
            rows: Mapping of setting key to stored string value
            defaults: Settings used for keys that are missing or invalid

        Returns:
            SyncSettings instance
        """
        settings = defaults or cls()
        changes: Dict[str, object] = {}

        for field in fields(cls):
            raw = rows.get(field.name)
            if raw is None:
                continue
            default = getattr(settings, field.name)
            if isinstance(default, bool):
                token = raw.strip().lower()
                if token not in _TRUE_VALUES + _FALSE_VALUES:
                    logger.warning("Ignoring invalid %s setting: %r", field.name, raw)
                    continue
                changes[field.name] = token in _TRUE_VALUES
            elif isinstance(default, int):
                try:
                    value = int(raw)
                except ValueError:
                    logger.warning("Ignoring invalid %s setting: %r", field.name, raw)
                    continue
                if value <= 0:
                    logger.warning("Ignoring non-positive %s: %d", field.name, value)
                    continue
                changes[field.name] = value
            else:
                changes[field.name] = raw

        return replace(settings, **changes)

    def to_rows(self) -> Dict[str, str]:
        """Serialize settings to key/value rows."""
        rows = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, bool):
                rows[field.name] = "true" if value else "false"
            else:
                rows[field.name] = str(value)
        return rows
