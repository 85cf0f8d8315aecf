"""Library scanner.

Walks a music directory, reads tags with mutagen and upserts artists, albums
and tracks. Files that disappeared since the last scan of the same directory
are removed from the library together with their sync log entries.
"""

import logging
import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from mutagen import File as MutagenFile
from mutagen import MutagenError

from ...config import DEFAULT_AUDIO_EXTENSIONS
from ...database.service import DatabaseService

logger = logging.getLogger(__name__)

ARTWORK_FILENAMES = ("cover.jpg", "folder.jpg", "front.jpg")

_LEADING_NUMBER = re.compile(r"^(\d{1,3})\s*[-._ ]\s*(.+)$")


@dataclass
class ScanStatistics:
    """Statistics from a library scan."""

    files_found: int = 0
    tracks_created: int = 0
    tracks_updated: int = 0
    tracks_removed: int = 0
    errors: List[str] = dataclass_field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert statistics to dictionary format.

        Returns:
            Dictionary with statistics and limited error list
        """
        return {
            "files_found": self.files_found,
            "tracks_created": self.tracks_created,
            "tracks_updated": self.tracks_updated,
            "tracks_removed": self.tracks_removed,
            "error_count": len(self.errors),
            "errors": self.errors[:10],
        }


@dataclass
class TrackTags:
    """Metadata of one audio file after applying fallbacks."""

    title: str
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    track_number: Optional[int] = None
    disc_number: Optional[int] = None
    year: Optional[int] = None
    bpm: Optional[float] = None
    duration: float = 0.0


def _first(tags: Mapping[str, Sequence[str]], key: str) -> Optional[str]:
    values = tags.get(key)
    if not values:
        return None
    value = str(values[0]).strip()
    return value or None


def _leading_int(value: Optional[str]) -> Optional[int]:
    """Parse ``"3"``, ``"03/12"`` or ``"1992-05-01"`` to their leading number."""
    if not value:
        return None
    match = re.match(r"\s*(\d+)", value)
    return int(match.group(1)) if match else None


def _to_float(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def read_tags(file_path: Path) -> TrackTags:
    """Read tags from an audio file, falling back to file and folder names.

    Without tags, ``Artist/Album/03 - Title.flac`` yields artist ``Artist``,
    album ``Album``, track 3 and title ``Title``.
    """
    tags: Mapping[str, Sequence[str]] = {}
    duration = 0.0
    try:
        audio_file = MutagenFile(file_path, easy=True)
        if audio_file is not None:
            tags = audio_file.tags or {}
            duration = float(getattr(audio_file.info, "length", 0.0) or 0.0)
    except (MutagenError, OSError, ValueError) as e:
        logger.warning("Cannot read metadata for %s: %s", file_path, e)

    stem_number: Optional[int] = None
    stem_title = file_path.stem
    match = _LEADING_NUMBER.match(stem_title)
    if match:
        stem_number = int(match.group(1))
        stem_title = match.group(2)

    parent = file_path.parent
    return TrackTags(
        title=_first(tags, "title") or stem_title,
        artist=(
            _first(tags, "albumartist")
            or _first(tags, "artist")
            or (parent.parent.name or None)
        ),
        album=_first(tags, "album") or (parent.name or None),
        genre=_first(tags, "genre"),
        track_number=_leading_int(_first(tags, "tracknumber")) or stem_number,
        disc_number=_leading_int(_first(tags, "discnumber")),
        year=_leading_int(_first(tags, "date")),
        bpm=_to_float(_first(tags, "bpm")),
        duration=duration,
    )


def find_artwork(directory: Path) -> Optional[Path]:
    """Return the first cover image found in ``directory``."""
    for name in ARTWORK_FILENAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


class LibraryScanner:
    """Imports a directory of audio files into the library store."""

    def __init__(
        self,
        db_service: DatabaseService,
        supported_extensions: tuple[str, ...] = DEFAULT_AUDIO_EXTENSIONS,
    ) -> None:
        """Initialize library scanner.

        Args:
            db_service: Database service instance
            supported_extensions: Lower-case audio file suffixes to import
        """
        self.db_service = db_service
        self.supported_extensions = tuple(ext.lower() for ext in supported_extensions)

    def find_audio_files(self, root: Path) -> List[Path]:
        """List supported audio files below ``root``, sorted."""
        return sorted(
            path
            for path in root.rglob("*")
            if path.is_file() and path.suffix.lower() in self.supported_extensions
        )

    def scan(self, root: Path) -> ScanStatistics:
        """Scan ``root`` and bring the library in line with it.

        Args:
            root: Directory to import

        Returns:
            ScanStatistics for the scan

        Raises:
            FileNotFoundError: If ``root`` is not a directory
        """
        root = Path(root).expanduser().resolve()
        if not root.is_dir():
            raise FileNotFoundError(f"Library directory not found: {root}")

        stats = ScanStatistics()
        seen: Set[str] = set()
        artwork_cache: Dict[Path, Optional[Path]] = {}

        for file_path in self.find_audio_files(root):
            stats.files_found += 1
            seen.add(str(file_path))
            try:
                self._import_file(file_path, artwork_cache, stats)
            except Exception as e:
                error_msg = f"Failed to import {file_path}: {e}"
                logger.error(error_msg)
                stats.errors.append(error_msg)

        for track in self.db_service.get_tracks_under_path(root):
            if track.file_path not in seen and not Path(track.file_path).exists():
                if self.db_service.delete_track(track.id):
                    stats.tracks_removed += 1

        logger.info(
            "Scanned %s: %d files, %d created, %d updated, %d removed",
            root,
            stats.files_found,
            stats.tracks_created,
            stats.tracks_updated,
            stats.tracks_removed,
        )
        return stats

    def _import_file(
        self,
        file_path: Path,
        artwork_cache: Dict[Path, Optional[Path]],
        stats: ScanStatistics,
    ) -> None:
        tags = read_tags(file_path)

        artist_id = None
        if tags.artist:
            artist_id = self.db_service.get_or_create_artist(tags.artist).id

        album_id = None
        if tags.album:
            directory = file_path.parent
            if directory not in artwork_cache:
                artwork_cache[directory] = find_artwork(directory)
            artwork = artwork_cache[directory]
            album = self.db_service.get_or_create_album(
                tags.album,
                artist_id=artist_id,
                year=tags.year,
                artwork_path=str(artwork) if artwork else None,
            )
            album_id = album.id

        track_data: Dict[str, Any] = {
            "file_path": str(file_path),
            "file_size": file_path.stat().st_size,
            "title": tags.title,
            "album_id": album_id,
            "artist_id": artist_id,
            "genre": tags.genre,
            "track_number": tags.track_number,
            "disc_number": tags.disc_number,
            "duration": tags.duration,
            "bpm": tags.bpm,
        }

        existing = self.db_service.get_track_by_path(str(file_path))
        if existing is None:
            self.db_service.create_track(track_data)
            stats.tracks_created += 1
        else:
            self.db_service.update_track(existing.id, track_data)
            stats.tracks_updated += 1
