"""Device-side building blocks.

Path layout, the changelog and playlist file formats, theme installation and
mount detection for a Rockbox player mounted as a directory.
"""

from .changelog import CHANGELOG_HEADER, ChangelogEntry, parse, serialize
from .layout import DeviceLayout
from .monitor import DeviceMonitor, is_mounted
from .paths import artwork_path, device_path, sanitize
from .playlist_exporter import generate_m3u8, playlist_filename
from .themes import ThemeInstaller

__all__ = [
    "CHANGELOG_HEADER",
    "ChangelogEntry",
    "parse",
    "serialize",
    "DeviceLayout",
    "DeviceMonitor",
    "is_mounted",
    "artwork_path",
    "device_path",
    "sanitize",
    "generate_m3u8",
    "playlist_filename",
    "ThemeInstaller",
]
