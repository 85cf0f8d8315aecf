"""Tests for sync settings parsing."""

from dap_sync.database import SyncSettings
from dap_sync.database.settings import (
    DEFAULT_MOUNT_PATH,
    DEFAULT_POLLING_INTERVAL_SECONDS,
)


class TestSyncSettings:
    """Test SyncSettings row conversion."""

    def test_defaults(self):
        """Test default values."""
        settings = SyncSettings()
        assert settings.mount_path == DEFAULT_MOUNT_PATH
        assert settings.auto_sync_enabled is False
        assert settings.polling_interval_seconds == DEFAULT_POLLING_INTERVAL_SECONDS
        assert settings.sync_play_counts_enabled is True
        assert settings.sync_playlists_enabled is True
        assert settings.sync_themes_enabled is False

    def test_to_rows(self):
        """Test booleans serialize as true/false."""
        rows = SyncSettings(auto_sync_enabled=True).to_rows()
        assert rows["auto_sync_enabled"] == "true"
        assert rows["sync_themes_enabled"] == "false"
        assert rows["polling_interval_seconds"] == "10"

    def test_from_rows_round_trip(self):
        """Test rows convert back to the same settings."""
        settings = SyncSettings(mount_path="/mnt/dap", polling_interval_seconds=42)
        assert SyncSettings.from_rows(settings.to_rows()) == settings

    def test_from_rows_boolean_spellings(self):
        """Test accepted spellings of true and false."""
        for raw in ("1", "true", "YES", " on "):
            rows = {"auto_sync_enabled": raw}
            assert SyncSettings.from_rows(rows).auto_sync_enabled is True
        for raw in ("0", "false", "NO", " off "):
            rows = {"sync_playlists_enabled": raw}
            assert SyncSettings.from_rows(rows).sync_playlists_enabled is False

    def test_invalid_boolean_keeps_default(self):
        """Test unrecognized boolean values leave the default in place."""
        for raw in ("nope", "maybe", ""):
            rows = {"auto_sync_enabled": raw, "sync_playlists_enabled": raw}
            settings = SyncSettings.from_rows(rows)
            assert settings.auto_sync_enabled is False
            assert settings.sync_playlists_enabled is True

    def test_invalid_interval_keeps_default(self):
        """Test unparsable and non-positive intervals are ignored."""
        for raw in ("abc", "0", "-5"):
            settings = SyncSettings.from_rows({"polling_interval_seconds": raw})
            assert settings.polling_interval_seconds == DEFAULT_POLLING_INTERVAL_SECONDS

    def test_unknown_keys_ignored(self):
        """Test unknown keys do not break loading."""
        settings = SyncSettings.from_rows({"color": "blue", "mount_path": "/x"})
        assert settings.mount_path == "/x"

    def test_defaults_argument(self):
        """Test missing keys come from the given defaults."""
        defaults = SyncSettings(mount_path="/media/ROCKBOX")
        settings = SyncSettings.from_rows({"auto_sync_enabled": "true"}, defaults)
        assert settings.mount_path == "/media/ROCKBOX"
        assert settings.auto_sync_enabled is True
