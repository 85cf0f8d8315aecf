"""Shared fixtures: a temporary library database, a music folder and a device."""

import logging
from pathlib import Path
from typing import Any, Optional

import pytest

from dap_sync.database import DatabaseService, SelectionKind, Track


def write_audio(path: Path, size: int = 100) -> Path:
    """Create a fake audio file of ``size`` bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    return path


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database for testing."""
    db = DatabaseService(tmp_path / "library.db")
    yield db
    db.close()


@pytest.fixture
def music_dir(tmp_path):
    """Local music library folder."""
    path = tmp_path / "library"
    path.mkdir()
    return path


@pytest.fixture
def mount(tmp_path):
    """Directory standing in for a mounted device."""
    path = tmp_path / "ROCKBOX"
    path.mkdir()
    return path


@pytest.fixture
def add_track(temp_db, music_dir):
    """Factory creating a track row backed by a real file."""

    def _add_track(
        title: str,
        artist: Optional[str] = "TOOL",
        album: Optional[str] = "Opiate",
        track_number: Optional[int] = 1,
        disc_number: Optional[int] = 1,
        size: int = 100,
        extension: str = "flac",
        artwork: Optional[Path] = None,
        **extra: Any,
    ) -> Track:
        artist_id = temp_db.get_or_create_artist(artist).id if artist else None
        album_id = None
        if album:
            album_id = temp_db.get_or_create_album(
                album,
                artist_id=artist_id,
                artwork_path=str(artwork) if artwork else None,
            ).id

        folder = music_dir / (artist or "_") / (album or "_")
        file_path = write_audio(folder / f"{title}.{extension}", size)

        data = {
            "file_path": str(file_path),
            "file_size": size,
            "title": title,
            "artist_id": artist_id,
            "album_id": album_id,
            "track_number": track_number,
            "disc_number": disc_number,
            "duration": 200.0,
        }
        data.update(extra)
        return temp_db.create_track(data)

    return _add_track


@pytest.fixture
def opiate(temp_db, add_track):
    """TOOL - Opiate: three tracks, selected as an album."""
    tracks = [
        add_track("Sweat", track_number=1),
        add_track("Hush", track_number=2),
        add_track("Part of Me", track_number=3),
    ]
    temp_db.add_selection(SelectionKind.ALBUM, tracks[0].album_id)
    return tracks


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
