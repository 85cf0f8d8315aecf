"""Fixed directory layout of a Rockbox device."""

from dataclasses import dataclass
from pathlib import Path

from .paths import MUSIC_DIR

PLAYLISTS_DIR = "Playlists"
ROCKBOX_DIR = ".rockbox"
CHANGELOG_FILENAME = "database_changelog.txt"


@dataclass(frozen=True)
class DeviceLayout:
    """Absolute locations on a mounted device."""

    root: Path

    @property
    def music_dir(self) -> Path:
        """Root of the synced ``Music/<artist>/<album>/`` tree."""
        return self.root / MUSIC_DIR

    @property
    def playlists_dir(self) -> Path:
        """Directory of exported ``.m3u8`` playlists."""
        return self.root / PLAYLISTS_DIR

    @property
    def rockbox_dir(self) -> Path:
        """Device-reserved firmware directory."""
        return self.root / ROCKBOX_DIR

    @property
    def changelog_path(self) -> Path:
        """Location of the play statistics changelog."""
        return self.rockbox_dir / CHANGELOG_FILENAME

    def resolve(self, device_path: str) -> Path:
        """Turn a device-relative path (with or without leading slash) absolute."""
        return self.root.joinpath(*device_path.lstrip("/").split("/"))
