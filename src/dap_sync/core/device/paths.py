"""Deterministic device paths for tracks and album artwork.

Every path is relative to the mount root and uses forward slashes, e.g.
``Music/TOOL/Opiate/01 - Sweat.flac``.
"""

from typing import Optional

MUSIC_DIR = "Music"
ARTWORK_FILENAME = "cover.jpg"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"

_ILLEGAL_CHARACTERS = str.maketrans("", "", '\\/:*?"<>|')


def sanitize(name: str) -> str:
    """Make ``name`` safe to use as a single path component.

    Removes ``\\ / : * ? " < > |``, then trims leading and trailing dots and
    spaces. An empty result becomes ``"Unknown"``.
    """
    cleaned = name.translate(_ILLEGAL_CHARACTERS).strip(". ")
    return cleaned or "Unknown"


def format_track_number(track_number: Optional[int], disc_number: Optional[int]) -> str:
    """Filename prefix: ``"203"`` for disc 2 track 3, ``"03"``, or ``"00"``."""
    if track_number is not None and disc_number is not None and disc_number > 1:
        return "%d%02d" % (disc_number, track_number)
    if track_number is not None:
        return "%02d" % track_number
    return "00"


def _album_dir(artist_name: Optional[str], album_title: Optional[str]) -> str:
    artist = sanitize(UNKNOWN_ARTIST if artist_name is None else artist_name)
    album = sanitize(UNKNOWN_ALBUM if album_title is None else album_title)
    return f"{MUSIC_DIR}/{artist}/{album}"


def device_path(
    artist_name: Optional[str],
    album_title: Optional[str],
    track_number: Optional[int],
    disc_number: Optional[int],
    track_title: str,
    file_extension: str,
) -> str:
    """Build the device path of a track.

    Args:
        artist_name: Artist name, ``None`` for "Unknown Artist"
        album_title: Album title, ``None`` for "Unknown Album"
        track_number: Track number on its disc
        disc_number: Disc number; only discs above 1 are encoded
        track_title: Track title
        file_extension: Source file extension, with or without a leading dot

    Returns:
        ``Music/<artist>/<album>/<number> - <title>.<ext>``
    """
    number = format_track_number(track_number, disc_number)
    extension = file_extension.lstrip(".").lower()
    title = sanitize(track_title)
    return f"{_album_dir(artist_name, album_title)}/{number} - {title}.{extension}"


def artwork_path(artist_name: Optional[str], album_title: Optional[str]) -> str:
    """Build the device path of an album's cover image."""
    return f"{_album_dir(artist_name, album_title)}/{ARTWORK_FILENAME}"
