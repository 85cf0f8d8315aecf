"""Tests for the library scanner."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from dap_sync.core.library import LibraryScanner, read_tags


def _touch(path: Path, size: int = 64) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * size)
    return path


@pytest.fixture
def library(tmp_path):
    """Untagged TOOL - Opiate folder with a cover and a stray text file."""
    root = tmp_path / "music"
    album = root / "TOOL" / "Opiate"
    _touch(album / "01 - Sweat.flac")
    _touch(album / "02 - Hush.flac", size=80)
    _touch(album / "cover.jpg")
    (album / "notes.txt").write_text("liner notes")
    return root


class TestReadTags:
    """Test tag reading and fallbacks."""

    def test_untagged_falls_back_to_names(self, library):
        """Test folder and file names stand in for missing tags."""
        tags = read_tags(library / "TOOL" / "Opiate" / "01 - Sweat.flac")
        assert tags.title == "Sweat"
        assert tags.artist == "TOOL"
        assert tags.album == "Opiate"
        assert tags.track_number == 1
        assert tags.duration == 0.0

    @pytest.mark.parametrize(
        "stem,title,number",
        [
            ("03 - Title", "Title", 3),
            ("7. Seven", "Seven", 7),
            ("12_Twelve", "Twelve", 12),
            ("Title Only", "Title Only", None),
            ("1999", "1999", None),
        ],
    )
    def test_filename_number(self, tmp_path, stem, title, number):
        """Test leading track numbers are split from the title."""
        tags = read_tags(_touch(tmp_path / "A" / "B" / f"{stem}.mp3"))
        assert tags.title == title
        assert tags.track_number == number

    def test_tags_take_precedence(self, tmp_path):
        """Test real tags win over file names."""
        audio = Mock()
        audio.tags = {
            "title": ["Sweat"],
            "artist": ["Maynard"],
            "albumartist": ["TOOL"],
            "album": ["Opiate"],
            "genre": ["Metal"],
            "tracknumber": ["1/6"],
            "discnumber": ["1/1"],
            "date": ["1992-03-10"],
            "bpm": ["120"],
        }
        audio.info.length = 225.5
        path = _touch(tmp_path / "x" / "y" / "99 - whatever.flac")

        with patch("dap_sync.core.library.scanner.MutagenFile", return_value=audio):
            tags = read_tags(path)

        assert tags.title == "Sweat"
        assert tags.artist == "TOOL"
        assert tags.album == "Opiate"
        assert tags.genre == "Metal"
        assert tags.track_number == 1
        assert tags.disc_number == 1
        assert tags.year == 1992
        assert tags.bpm == 120.0
        assert tags.duration == 225.5


class TestLibraryScanner:
    """Test importing folders into the library."""

    def test_scan_creates_tracks(self, temp_db, library):
        """Test a first scan imports every audio file."""
        stats = LibraryScanner(temp_db).scan(library)

        assert stats.files_found == 2
        assert stats.tracks_created == 2
        assert stats.errors == []
        tracks = temp_db.get_all_tracks()
        assert sorted(t.title for t in tracks) == ["Hush", "Sweat"]
        hush = next(t for t in tracks if t.title == "Hush")
        assert hush.file_size == 80
        assert hush.track_number == 2
        album = temp_db.get_album_by_id(hush.album_id)
        assert album.title == "Opiate"
        assert album.artwork_path.endswith("cover.jpg")
        assert temp_db.get_artist_by_id(hush.artist_id).name == "TOOL"

    def test_rescan_updates(self, temp_db, library):
        """Test a second scan updates instead of duplicating."""
        scanner = LibraryScanner(temp_db)
        scanner.scan(library)
        stats = scanner.scan(library)

        assert stats.tracks_created == 0
        assert stats.tracks_updated == 2
        assert len(temp_db.get_all_tracks()) == 2
        assert len(temp_db.get_all_albums()) == 1

    def test_vanished_files_removed(self, temp_db, library):
        """Test tracks whose files are gone are forgotten with their sync log."""
        scanner = LibraryScanner(temp_db)
        scanner.scan(library)
        hush = next(t for t in temp_db.get_all_tracks() if t.title == "Hush")
        temp_db.replace_sync_log(hush.id, "Music/TOOL/Opiate/02 - Hush.flac", 80)
        Path(hush.file_path).unlink()

        stats = scanner.scan(library)

        assert stats.tracks_removed == 1
        assert temp_db.get_track_by_id(hush.id) is None
        assert temp_db.get_all_sync_logs() == []

    def test_extension_filter(self, temp_db, library):
        """Test only configured extensions are imported."""
        _touch(library / "TOOL" / "Opiate" / "03 - Part of Me.mp3")
        stats = LibraryScanner(temp_db, (".mp3",)).scan(library)
        assert stats.files_found == 1

    def test_missing_root(self, temp_db, tmp_path):
        """Test scanning a missing directory raises."""
        with pytest.raises(FileNotFoundError):
            LibraryScanner(temp_db).scan(tmp_path / "missing")

    def test_statistics_dict(self, temp_db, library):
        """Test statistics serialize for display."""
        data = LibraryScanner(temp_db).scan(library).to_dict()
        assert data["files_found"] == 2
        assert data["error_count"] == 0
