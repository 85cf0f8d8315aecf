"""Tests for device filesystem helpers and layout."""

from pathlib import Path
from unittest.mock import patch

import pytest

from dap_sync.core.device import DeviceLayout
from dap_sync.core.device.fileops import (
    prune_empty_directories,
    remove_file,
    write_text_atomic,
)


class TestWriteTextAtomic:
    """Test atomic text writes."""

    def test_creates_parents_and_writes(self, tmp_path):
        """Test missing parent directories are created."""
        target = tmp_path / "a" / "b" / "file.txt"
        write_text_atomic(target, "line 1\nline 2\n")
        assert target.read_bytes() == b"line 1\nline 2\n"

    def test_replaces_existing(self, tmp_path):
        """Test an existing file is replaced and no temp file remains."""
        target = tmp_path / "file.txt"
        target.write_text("old")
        write_text_atomic(target, "new")
        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    def test_failure_keeps_original(self, tmp_path):
        """Test a failed replace leaves the original untouched."""
        target = tmp_path / "file.txt"
        target.write_text("old")

        with patch(
            "dap_sync.core.device.fileops.os.replace", side_effect=OSError("full")
        ):
            with pytest.raises(OSError):
                write_text_atomic(target, "new")

        assert target.read_text() == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]


class TestRemoveAndPrune:
    """Test deletion helpers."""

    def test_remove_missing_file(self, tmp_path):
        """Test removing an absent file is not an error."""
        assert remove_file(tmp_path / "missing") is False

    def test_remove_existing_file(self, tmp_path):
        """Test removing a file."""
        path = tmp_path / "x"
        path.write_text("x")
        assert remove_file(path) is True
        assert not path.exists()

    def test_prune_keeps_root_and_content(self, tmp_path):
        """Test only empty directories below the root are removed."""
        root = tmp_path / "Music"
        (root / "A" / "B").mkdir(parents=True)
        (root / "C" / "D").mkdir(parents=True)
        (root / "C" / "keep.flac").write_text("x")

        assert prune_empty_directories(root) == 3
        assert [p.name for p in root.iterdir()] == ["C"]
        assert (root / "C" / "keep.flac").exists()

    def test_prune_missing_root(self, tmp_path):
        """Test pruning a missing root does nothing."""
        assert prune_empty_directories(tmp_path / "none") == 0


class TestDeviceLayout:
    """Test device directory layout."""

    def test_paths(self, mount):
        """Test well-known device locations."""
        layout = DeviceLayout(mount)
        assert layout.music_dir == mount / "Music"
        assert layout.playlists_dir == mount / "Playlists"
        assert layout.changelog_path == mount / ".rockbox" / "database_changelog.txt"

    def test_resolve(self, mount):
        """Test device paths resolve below the mount with or without a slash."""
        layout = DeviceLayout(mount)
        expected = mount / "Music" / "TOOL" / "Opiate" / "01 - Sweat.flac"
        assert layout.resolve("Music/TOOL/Opiate/01 - Sweat.flac") == expected
        assert layout.resolve("/Music/TOOL/Opiate/01 - Sweat.flac") == expected
        assert isinstance(layout.resolve("Music"), Path)
