"""Library import.

Reads tags from local audio files into the library store.
"""

from .scanner import LibraryScanner, ScanStatistics, TrackTags, read_tags

__all__ = [
    "LibraryScanner",
    "ScanStatistics",
    "TrackTags",
    "read_tags",
]
