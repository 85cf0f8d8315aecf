"""Tests for database models and service."""

from datetime import datetime

import pytest

from dap_sync.database import (
    DatabaseService,
    SelectionKind,
    SmartPlaylistField,
    SmartPlaylistOperator,
    SyncSettings,
)


class TestDatabaseService:
    """Test database service basics."""

    def test_init_db(self, temp_db):
        """Test a new database is created with an empty schema."""
        assert temp_db.db_path.exists()
        assert temp_db.is_initialized()
        stats = temp_db.get_statistics()
        assert stats["tracks"] == 0
        assert stats["selections"] == 0
        assert stats["synced_tracks"] == 0

    def test_reopen_existing(self, tmp_path, add_track):
        """Test reopening keeps existing rows."""
        add_track("Sweat")
        reopened = DatabaseService(tmp_path / "library.db")
        try:
            assert reopened.get_statistics()["tracks"] == 1
        finally:
            reopened.close()

    def test_get_or_create_artist(self, temp_db):
        """Test artists are unique by name."""
        first = temp_db.get_or_create_artist("TOOL")
        second = temp_db.get_or_create_artist("TOOL")
        assert first.id == second.id
        assert len(temp_db.get_all_artists()) == 1

    def test_get_or_create_album_updates_artwork(self, temp_db):
        """Test newly found artwork is stored on an existing album."""
        artist = temp_db.get_or_create_artist("TOOL")
        album = temp_db.get_or_create_album("Opiate", artist_id=artist.id)
        assert album.artwork_path is None

        again = temp_db.get_or_create_album(
            "Opiate", artist_id=artist.id, artwork_path="/covers/opiate.jpg"
        )

        assert again.id == album.id
        assert temp_db.get_album_by_id(album.id).artwork_path == "/covers/opiate.jpg"

    def test_update_track(self, temp_db, add_track):
        """Test updating track columns."""
        track = add_track("Sweat")
        temp_db.update_track(track.id, {"title": "Sweat (Live)", "unknown": 1})
        assert temp_db.get_track_by_id(track.id).title == "Sweat (Live)"

    def test_update_missing_track(self, temp_db):
        """Test updating a missing track raises."""
        with pytest.raises(ValueError):
            temp_db.update_track(999, {"title": "x"})

    def test_get_tracks_under_path(self, temp_db, add_track, music_dir):
        """Test prefix lookup of tracks below a folder."""
        add_track("Sweat")
        add_track("Schism", album="Lateralus")
        found = temp_db.get_tracks_under_path(music_dir / "TOOL" / "Opiate")
        assert [t.title for t in found] == ["Sweat"]


class TestSelections:
    """Test sync selection storage and expansion."""

    def test_add_selection_idempotent(self, temp_db, add_track):
        """Test adding the same selection twice keeps one row."""
        track = add_track("Sweat")
        assert temp_db.add_selection(SelectionKind.TRACK, track.id) is True
        assert temp_db.add_selection(SelectionKind.TRACK, track.id) is False
        assert len(temp_db.get_all_selections()) == 1
        assert temp_db.has_selections()

    def test_remove_selection(self, temp_db, add_track):
        """Test removing a selection."""
        track = add_track("Sweat")
        temp_db.add_selection(SelectionKind.TRACK, track.id)
        assert temp_db.remove_selection(SelectionKind.TRACK, track.id) is True
        assert temp_db.remove_selection(SelectionKind.TRACK, track.id) is False
        assert not temp_db.has_selections()

    def test_delete_track_removes_selection_and_log(self, temp_db, add_track):
        """Test deleting a track cascades to its selection and sync log."""
        track = add_track("Sweat")
        temp_db.add_selection(SelectionKind.TRACK, track.id)
        temp_db.replace_sync_log(track.id, "Music/TOOL/Opiate/01 - Sweat.flac", 100)

        assert temp_db.delete_track(track.id) is True

        assert temp_db.get_all_selections() == []
        assert temp_db.get_all_sync_logs() == []

    def test_delete_album_keeps_tracks(self, temp_db, opiate):
        """Test deleting an album leaves its tracks without an album."""
        album_id = opiate[0].album_id
        assert temp_db.delete_album(album_id) is True
        assert temp_db.get_all_selections() == []
        assert temp_db.get_track_by_id(opiate[0].id).album_id is None

    def test_prune_empty_selections(self, temp_db, add_track):
        """Test selections pointing at nothing are pruned."""
        track = add_track("Sweat")
        temp_db.add_selection(SelectionKind.TRACK, track.id)
        temp_db.add_selection(SelectionKind.ALBUM, 999)
        temp_db.add_selection(SelectionKind.ARTIST, track.artist_id)

        assert temp_db.prune_empty_selections() == 1
        kinds = {s.kind for s in temp_db.get_all_selections()}
        assert kinds == {"track", "artist"}

    def test_track_ids_for_albums_and_artists(self, temp_db, opiate, add_track):
        """Test album and artist expansion."""
        other = add_track("Schism", album="Lateralus")
        album_ids = temp_db.get_track_ids_for_albums([opiate[0].album_id])
        artist_ids = temp_db.get_track_ids_for_artists([opiate[0].artist_id])
        assert album_ids == {t.id for t in opiate}
        assert artist_ids == {t.id for t in opiate} | {other.id}


class TestSyncLog:
    """Test sync log storage."""

    def test_replace_sync_log(self, temp_db, add_track):
        """Test a track keeps at most one sync log entry."""
        track = add_track("Sweat")
        temp_db.replace_sync_log(track.id, "Music/a.flac", 100)
        temp_db.replace_sync_log(track.id, "Music/b.flac", 200)

        logs = temp_db.get_all_sync_logs()
        assert len(logs) == 1
        assert logs[0].device_path == "Music/b.flac"
        assert logs[0].file_size == 200

    def test_delete_sync_log(self, temp_db, add_track):
        """Test deleting a sync log entry."""
        track = add_track("Sweat")
        temp_db.replace_sync_log(track.id, "Music/a.flac", 100)
        assert temp_db.delete_sync_log(track.id) is True
        assert temp_db.get_sync_log(track.id) is None
        assert temp_db.delete_sync_log(track.id) is False

    def test_is_device_path_logged(self, temp_db, add_track):
        """Test path lookups can exclude the asking track."""
        sweat = add_track("Sweat")
        hush = add_track("Hush")
        temp_db.replace_sync_log(sweat.id, "Music/a.flac", 100)

        assert temp_db.is_device_path_logged("Music/a.flac") is True
        assert temp_db.is_device_path_logged("Music/a.flac", sweat.id) is False
        assert temp_db.is_device_path_logged("Music/a.flac", hush.id) is True
        assert temp_db.is_device_path_logged("Music/b.flac") is False

    def test_track_sync_rows_order(self, temp_db, add_track):
        """Test rows come back in artist, album, disc, track order."""
        add_track("B2", artist="Beta", album="X", track_number=2)
        add_track("B1", artist="Beta", album="X", track_number=1)
        add_track("A", artist="Alpha", album="Z", track_number=5)
        add_track("D2T1", artist="Beta", album="X", track_number=1, disc_number=2)
        ids = {t.id for t in temp_db.get_all_tracks()}

        rows = temp_db.get_track_sync_rows(ids)

        assert [row[0].title for row in rows] == ["A", "B1", "B2", "D2T1"]
        assert rows[0][3] is None

    def test_update_track_statistics(self, temp_db, add_track):
        """Test statistics are written for existing tracks only."""
        track = add_track("Sweat")
        played = datetime(2023, 11, 14, 22, 13, 20)

        updated = temp_db.update_track_statistics(
            [(track.id, 5, played, True), (999, 1, None, False)]
        )

        assert updated == 1
        stored = temp_db.get_track_by_id(track.id)
        assert stored.play_count == 5
        assert stored.last_played_at == played
        assert stored.is_favorite is True


class TestPlaylists:
    """Test manual and smart playlists."""

    def test_playlist_order(self, temp_db, opiate):
        """Test playlist tracks keep insertion order."""
        playlist = temp_db.create_playlist("Mix", [opiate[2].id, opiate[0].id])
        temp_db.add_track_to_playlist(playlist.id, opiate[1].id)

        assert temp_db.get_playlist_track_ids(playlist.id) == [
            opiate[2].id,
            opiate[0].id,
            opiate[1].id,
        ]

    def test_smart_playlist_play_count(self, temp_db, opiate):
        """Test a play count rule, ordered by play count."""
        temp_db.update_track_statistics(
            [(opiate[0].id, 3, None, False), (opiate[1].id, 9, None, False)]
        )
        smart = temp_db.create_smart_playlist(
            "Most Played",
            [(SmartPlaylistField.PLAY_COUNT, SmartPlaylistOperator.GREATER_THAN, "1")],
        )
        assert temp_db.get_smart_playlist_track_ids(smart.id) == [
            opiate[1].id,
            opiate[0].id,
        ]

    def test_smart_playlist_favorites_and_artist(self, temp_db, opiate, add_track):
        """Test rules are AND-ed together."""
        other = add_track("Intolerance", artist="Other", album="Undertow")
        temp_db.update_track_statistics(
            [(opiate[0].id, 0, None, True), (other.id, 0, None, True)]
        )
        smart = temp_db.create_smart_playlist(
            "TOOL Favorites",
            [
                (SmartPlaylistField.IS_FAVORITE, SmartPlaylistOperator.IS_TRUE, ""),
                (SmartPlaylistField.ARTIST, SmartPlaylistOperator.CONTAINS, "TOO"),
            ],
        )
        assert temp_db.get_smart_playlist_track_ids(smart.id) == [opiate[0].id]

    def test_smart_playlist_without_rules_is_empty(self, temp_db, opiate):
        """Test a smart playlist without rules matches nothing."""
        smart = temp_db.create_smart_playlist("Empty", [])
        assert temp_db.get_smart_playlist_track_ids(smart.id) == []

    def test_smart_playlist_invalid_value_matches_nothing(self, temp_db, opiate):
        """Test an unparsable rule value matches nothing."""
        smart = temp_db.create_smart_playlist(
            "Broken",
            [(SmartPlaylistField.PLAY_COUNT, SmartPlaylistOperator.GREATER_THAN, "x")],
        )
        assert temp_db.get_smart_playlist_track_ids(smart.id) == []


class TestSettingsStorage:
    """Test persisted sync settings."""

    def test_defaults_when_empty(self, temp_db):
        """Test loading without stored rows returns the defaults."""
        defaults = SyncSettings(mount_path="/media/ROCKBOX")
        assert temp_db.load_sync_settings(defaults) == defaults

    def test_save_and_load(self, temp_db):
        """Test settings round trip through the store."""
        settings = SyncSettings(
            mount_path="/mnt/dap",
            auto_sync_enabled=True,
            polling_interval_seconds=30,
            sync_play_counts_enabled=False,
            sync_playlists_enabled=False,
            sync_themes_enabled=True,
        )
        temp_db.save_sync_settings(settings)
        temp_db.save_sync_settings(settings)
        assert temp_db.load_sync_settings() == settings
