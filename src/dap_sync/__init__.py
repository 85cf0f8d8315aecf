"""DAP Sync.

Keeps a Rockbox-based digital audio player in sync with a local music
library: selected tracks are copied in a fixed folder layout, play counts
and favorites are merged both ways through the device changelog, and
playlists are exported as M3U8.
"""

__version__ = "1.0.0"
__author__ = "Anton"
__email__ = ""

from .config import Config

__all__ = [
    "Config",
]
