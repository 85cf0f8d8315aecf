"""Tests for selection resolution."""

from dap_sync.core.sync import SelectionResolver
from dap_sync.database import SelectionKind, SyncSelection


class TestResolve:
    """Test expanding selections into track ids."""

    def test_album_selection(self, temp_db, opiate):
        """Test an album selection expands to its tracks."""
        resolver = SelectionResolver(temp_db)
        assert resolver.resolve(temp_db.get_all_selections()) == {
            t.id for t in opiate
        }

    def test_union_without_duplicates(self, temp_db, opiate, add_track):
        """Test overlapping selections resolve to a union."""
        schism = add_track("Schism", album="Lateralus")
        temp_db.add_selection(SelectionKind.TRACK, opiate[0].id)
        temp_db.add_selection(SelectionKind.ARTIST, opiate[0].artist_id)

        resolved = SelectionResolver(temp_db).resolve(temp_db.get_all_selections())

        assert resolved == {t.id for t in opiate} | {schism.id}

    def test_missing_track_selection_ignored(self, temp_db):
        """Test a track selection whose track is gone resolves to nothing."""
        temp_db.add_selection(SelectionKind.TRACK, 42)
        assert SelectionResolver(temp_db).resolve(temp_db.get_all_selections()) == set()

    def test_unknown_kind_ignored(self, temp_db, opiate):
        """Test selections of an unknown kind are skipped."""
        bogus = SyncSelection(kind="genre", target_id=1)
        assert SelectionResolver(temp_db).resolve([bogus]) == set()

    def test_empty(self, temp_db):
        """Test nothing selected resolves to an empty set."""
        assert SelectionResolver(temp_db).resolve([]) == set()

    def test_album_reflects_current_membership(self, temp_db, opiate, add_track):
        """Test tracks added to a selected album are picked up."""
        late = add_track("Jerk-Off", track_number=4)
        resolved = SelectionResolver(temp_db).resolve(temp_db.get_all_selections())
        assert late.id in resolved


class TestLoadRecords:
    """Test loading sync records."""

    def test_records_in_device_order(self, temp_db, opiate):
        """Test records carry joined metadata in track order."""
        resolver = SelectionResolver(temp_db)
        records = resolver.resolve_records()

        assert [r.title for r in records] == ["Sweat", "Hush", "Part of Me"]
        first = records[0]
        assert first.artist_name == "TOOL"
        assert first.album_title == "Opiate"
        assert first.file_extension == "flac"
        assert first.sync_log is None
        assert first.device_path() == "Music/TOOL/Opiate/01 - Sweat.flac"
        assert first.artwork_device_path() == "Music/TOOL/Opiate/cover.jpg"

    def test_record_carries_sync_log(self, temp_db, opiate):
        """Test a synced track carries a snapshot of its log entry."""
        temp_db.replace_sync_log(opiate[0].id, "Music/old.flac", 123)

        records = SelectionResolver(temp_db).load_records([opiate[0].id])

        assert records[0].sync_log.device_path == "Music/old.flac"
        assert records[0].sync_log.file_size == 123

    def test_track_without_album_or_artist(self, temp_db, add_track):
        """Test fallbacks for tracks lacking album and artist."""
        track = add_track("Loose", artist=None, album=None, track_number=None)
        records = SelectionResolver(temp_db).load_records([track.id])
        expected = "Music/Unknown Artist/Unknown Album/00 - Loose.flac"
        assert records[0].device_path() == expected
