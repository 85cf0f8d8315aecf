"""Database service for the music library and device sync state."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import (
    and_,
    create_engine,
    delete,
    event,
    false,
    func,
    inspect,
    select,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from .models import (
    Album,
    Artist,
    Base,
    Playlist,
    PlaylistTrack,
    SelectionKind,
    SmartPlaylist,
    SmartPlaylistField,
    SmartPlaylistOperator,
    SmartPlaylistRule,
    SyncLogEntry,
    SyncSelection,
    SyncSetting,
    Track,
    utc_now,
)
from .settings import SyncSettings

logger = logging.getLogger(__name__)

# (track_id, play_count, last_played_at, is_favorite)
TrackStatisticsUpdate = Tuple[int, int, Optional[datetime], bool]


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseService:
    """Service for database operations and transaction management.

    Every public method opens its own short-lived session, so no transaction
    outlives a single read or write.
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Initialize database service.

        Args:
            db_path: Path to SQLite database file.
                    If None, uses default ~/.dap-sync/library.db
        """
        if db_path is None:
            db_path = Path.home() / ".dap-sync" / "library.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db_exists = self.db_path.exists()

        # The sync worker and the polling thread both open sessions
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

        logger.info("Database initialized at: %s", self.db_path)

        if not db_exists:
            logger.info("New database detected, initializing schema...")
            self.init_db()

    def init_db(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug("Database schema created successfully")

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            SQLAlchemy Session object

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def is_initialized(self) -> bool:
        """Check whether the sync tables exist and the database is reachable."""
        try:
            inspector = inspect(self.engine)
            required = ("tracks", "sync_selections", "sync_log", "sync_settings")
            missing = [name for name in required if not inspector.has_table(name)]
            if missing:
                logger.debug("Required tables missing: %s", ", ".join(missing))
                return False

            with self.get_session() as session:
                session.execute(select(1))
            return True
        except Exception as e:
            logger.debug("Database initialization check failed: %s", e)
            return False

    def get_statistics(self) -> Dict[str, int]:
        """Get row counts for the main tables."""
        with self.get_session() as session:
            counts = {}
            for key, model in (
                ("artists", Artist),
                ("albums", Album),
                ("tracks", Track),
                ("playlists", Playlist),
                ("smart_playlists", SmartPlaylist),
                ("selections", SyncSelection),
                ("synced_tracks", SyncLogEntry),
            ):
                counts[key] = session.scalar(select(func.count()).select_from(model))
            return counts

    # =========================================================================
    # Library: artists, albums, tracks
    # =========================================================================

    def get_or_create_artist(self, name: str) -> Artist:
        """Return the artist with ``name``, creating it if needed."""
        with self.get_session() as session:
            artist = session.scalar(select(Artist).where(Artist.name == name))
            if artist is None:
                artist = Artist(name=name)
                session.add(artist)
                session.commit()
                logger.debug("Created artist: %s (ID: %s)", name, artist.id)
            return artist

    def get_or_create_album(
        self,
        title: str,
        artist_id: Optional[int] = None,
        year: Optional[int] = None,
        artwork_path: Optional[str] = None,
    ) -> Album:
        """Return the album matching title and artist, creating it if needed.

        A newly discovered artwork path or year is stored on an existing album.
        """
        with self.get_session() as session:
            album = session.scalar(
                select(Album).where(Album.title == title, Album.artist_id == artist_id)
            )
            if album is None:
                album = Album(
                    title=title,
                    artist_id=artist_id,
                    year=year,
                    artwork_path=artwork_path,
                )
                session.add(album)
                session.commit()
                logger.debug("Created album: %s (ID: %s)", title, album.id)
                return album

            changed = False
            if artwork_path and album.artwork_path != artwork_path:
                album.artwork_path = artwork_path
                changed = True
            if year and album.year != year:
                album.year = year
                changed = True
            if changed:
                session.commit()
            return album

    def get_artist_by_id(self, artist_id: int) -> Optional[Artist]:
        """Get artist by database ID."""
        with self.get_session() as session:
            return session.get(Artist, artist_id)

    def get_album_by_id(self, album_id: int) -> Optional[Album]:
        """Get album by database ID."""
        with self.get_session() as session:
            return session.get(Album, album_id)

    def get_track_by_id(self, track_id: int) -> Optional[Track]:
        """Get track by database ID."""
        with self.get_session() as session:
            return session.get(Track, track_id)

    def get_track_by_path(self, file_path: str) -> Optional[Track]:
        """Get track by its source file path."""
        with self.get_session() as session:
            return session.scalar(select(Track).where(Track.file_path == file_path))

    def get_all_artists(self) -> List[Artist]:
        """Get all artists ordered by name."""
        with self.get_session() as session:
            return list(session.scalars(select(Artist).order_by(Artist.name)))

    def get_all_albums(self) -> List[Album]:
        """Get all albums ordered by title."""
        with self.get_session() as session:
            return list(session.scalars(select(Album).order_by(Album.title)))

    def get_all_tracks(self) -> List[Track]:
        """Get all tracks ordered by ID."""
        with self.get_session() as session:
            return list(session.scalars(select(Track).order_by(Track.id)))

    def get_tracks_under_path(self, root: Path) -> List[Track]:
        """Get tracks whose source file lives below ``root``."""
        prefix = str(root).rstrip("/\\") + "/"
        with self.get_session() as session:
            stmt = select(Track).where(
                Track.file_path.startswith(prefix, autoescape=True)
            )
            return list(session.scalars(stmt))

    def create_track(self, track_data: Dict[str, Any]) -> Track:
        """Create a new track.

        Args:
            track_data: Track column values

        Returns:
            Created Track object
        """
        with self.get_session() as session:
            track = Track(**track_data)
            session.add(track)
            session.commit()
            logger.debug("Created track: %s (ID: %s)", track.title, track.id)
            return track

    def update_track(self, track_id: int, track_data: Dict[str, Any]) -> Track:
        """Update an existing track.

        Raises:
            ValueError: If the track does not exist
        """
        with self.get_session() as session:
            track = session.get(Track, track_id)
            if not track:
                raise ValueError(f"Track not found: {track_id}")

            for key, value in track_data.items():
                if hasattr(track, key):
                    setattr(track, key, value)

            session.commit()
            logger.debug("Updated track: %s", track.id)
            return track

    def delete_track(self, track_id: int) -> bool:
        """Delete a track, its sync log entry and any selection of it.

        Returns:
            True if the track existed
        """
        with self.get_session() as session:
            track = session.get(Track, track_id)
            if track is None:
                return False
            session.delete(track)
            session.execute(
                delete(SyncSelection).where(
                    SyncSelection.kind == SelectionKind.TRACK.value,
                    SyncSelection.target_id == track_id,
                )
            )
            session.commit()
            logger.info("Deleted track %d", track_id)
            return True

    def delete_album(self, album_id: int) -> bool:
        """Delete an album and any selection of it; tracks keep no album."""
        with self.get_session() as session:
            album = session.get(Album, album_id)
            if album is None:
                return False
            session.delete(album)
            session.execute(
                delete(SyncSelection).where(
                    SyncSelection.kind == SelectionKind.ALBUM.value,
                    SyncSelection.target_id == album_id,
                )
            )
            session.commit()
            logger.info("Deleted album %d", album_id)
            return True

    def delete_artist(self, artist_id: int) -> bool:
        """Delete an artist and any selection of it."""
        with self.get_session() as session:
            artist = session.get(Artist, artist_id)
            if artist is None:
                return False
            session.delete(artist)
            session.execute(
                delete(SyncSelection).where(
                    SyncSelection.kind == SelectionKind.ARTIST.value,
                    SyncSelection.target_id == artist_id,
                )
            )
            session.commit()
            logger.info("Deleted artist %d", artist_id)
            return True

    def update_track_statistics(self, updates: Sequence[TrackStatisticsUpdate]) -> int:
        """Write merged play statistics in a single transaction.

        Args:
            updates: (track_id, play_count, last_played_at, is_favorite) tuples

        Returns:
            Number of tracks updated
        """
        if not updates:
            return 0

        updated = 0
        with self.get_session() as session:
            for track_id, play_count, last_played_at, is_favorite in updates:
                track = session.get(Track, track_id)
                if track is None:
                    continue
                track.play_count = play_count
                track.last_played_at = last_played_at
                track.is_favorite = is_favorite
                updated += 1
            session.commit()
        logger.debug("Updated play statistics for %d tracks", updated)
        return updated

    # =========================================================================
    # Sync selections
    # =========================================================================

    def add_selection(self, kind: SelectionKind, target_id: int) -> bool:
        """Mark a track, album or artist for the device.

        Returns:
            False if the selection already existed
        """
        with self.get_session() as session:
            if self._selection_exists(session, kind, target_id):
                return False
            session.add(SyncSelection(kind=kind.value, target_id=target_id))
            session.commit()
            logger.info("Added %s %d to sync selection", kind.value, target_id)
            return True

    def remove_selection(self, kind: SelectionKind, target_id: int) -> bool:
        """Remove a selection.

        Returns:
            True if a selection was removed
        """
        with self.get_session() as session:
            result = session.execute(
                delete(SyncSelection).where(
                    SyncSelection.kind == kind.value,
                    SyncSelection.target_id == target_id,
                )
            )
            session.commit()
            removed = bool(result.rowcount)
            if removed:
                logger.info("Removed %s %d from sync selection", kind.value, target_id)
            return removed

    def selection_exists(self, kind: SelectionKind, target_id: int) -> bool:
        """Check whether a selection exists."""
        with self.get_session() as session:
            return self._selection_exists(session, kind, target_id)

    @staticmethod
    def _selection_exists(
        session: Session, kind: SelectionKind, target_id: int
    ) -> bool:
        stmt = select(SyncSelection.id).where(
            SyncSelection.kind == kind.value, SyncSelection.target_id == target_id
        )
        return session.scalar(stmt) is not None

    def get_all_selections(self) -> List[SyncSelection]:
        """Get all selections in creation order."""
        with self.get_session() as session:
            stmt = select(SyncSelection).order_by(SyncSelection.id)
            return list(session.scalars(stmt))

    def has_selections(self) -> bool:
        """Check whether anything is selected for the device."""
        with self.get_session() as session:
            return session.scalar(select(SyncSelection.id).limit(1)) is not None

    def get_existing_track_ids(self, track_ids: Iterable[int]) -> Set[int]:
        """Filter ``track_ids`` down to tracks that still exist."""
        ids = set(track_ids)
        if not ids:
            return set()
        with self.get_session() as session:
            return set(session.scalars(select(Track.id).where(Track.id.in_(ids))))

    def get_track_ids_for_albums(self, album_ids: Iterable[int]) -> Set[int]:
        """Get IDs of all tracks currently belonging to the given albums."""
        ids = set(album_ids)
        if not ids:
            return set()
        with self.get_session() as session:
            return set(session.scalars(select(Track.id).where(Track.album_id.in_(ids))))

    def get_track_ids_for_artists(self, artist_ids: Iterable[int]) -> Set[int]:
        """Get IDs of all tracks currently belonging to the given artists."""
        ids = set(artist_ids)
        if not ids:
            return set()
        with self.get_session() as session:
            stmt = select(Track.id).where(Track.artist_id.in_(ids))
            return set(session.scalars(stmt))

    def prune_empty_selections(self) -> int:
        """Delete selections whose underlying tracks are all gone.

        Returns:
            Number of selections removed
        """
        with self.get_session() as session:
            removed = 0
            for selection in session.scalars(select(SyncSelection)):
                if selection.kind == SelectionKind.TRACK.value:
                    condition = Track.id == selection.target_id
                elif selection.kind == SelectionKind.ALBUM.value:
                    condition = Track.album_id == selection.target_id
                else:
                    condition = Track.artist_id == selection.target_id
                if session.scalar(select(Track.id).where(condition).limit(1)) is None:
                    session.delete(selection)
                    removed += 1
            session.commit()
        if removed:
            logger.info("Pruned %d empty sync selections", removed)
        return removed

    # =========================================================================
    # Sync log
    # =========================================================================

    def get_all_sync_logs(self) -> List[SyncLogEntry]:
        """Get every sync log entry."""
        with self.get_session() as session:
            return list(session.scalars(select(SyncLogEntry).order_by(SyncLogEntry.id)))

    def get_sync_log(self, track_id: int) -> Optional[SyncLogEntry]:
        """Get the sync log entry of a track."""
        with self.get_session() as session:
            stmt = select(SyncLogEntry).where(SyncLogEntry.track_id == track_id)
            return session.scalar(stmt)

    def is_device_path_logged(
        self, device_path: str, exclude_track_id: Optional[int] = None
    ) -> bool:
        """Whether any sync log entry, other than the excluded track's, uses a path."""
        with self.get_session() as session:
            stmt = select(SyncLogEntry.id).where(
                SyncLogEntry.device_path == device_path
            )
            if exclude_track_id is not None:
                stmt = stmt.where(SyncLogEntry.track_id != exclude_track_id)
            return session.scalar(stmt.limit(1)) is not None

    def replace_sync_log(
        self,
        track_id: int,
        device_path: str,
        file_size: int,
        synced_at: Optional[datetime] = None,
    ) -> SyncLogEntry:
        """Replace any sync log entry of a track with a fresh one."""
        with self.get_session() as session:
            session.execute(
                delete(SyncLogEntry).where(SyncLogEntry.track_id == track_id)
            )
            entry = SyncLogEntry(
                track_id=track_id,
                device_path=device_path,
                file_size=file_size,
                synced_at=synced_at or utc_now(),
            )
            session.add(entry)
            session.commit()
            return entry

    def delete_sync_log(self, track_id: int) -> bool:
        """Delete the sync log entry of a track."""
        with self.get_session() as session:
            result = session.execute(
                delete(SyncLogEntry).where(SyncLogEntry.track_id == track_id)
            )
            session.commit()
            return bool(result.rowcount)

    def get_track_sync_rows(
        self, track_ids: Iterable[int]
    ) -> List[
        Tuple[Track, Optional[Album], Optional[Artist], Optional[SyncLogEntry]]
    ]:
        """Load tracks joined with album, artist and sync log in one read.

        Rows are ordered by artist name, album title, disc number, track
        number and title.
        """
        ids = set(track_ids)
        if not ids:
            return []
        with self.get_session() as session:
            stmt = (
                select(Track, Album, Artist, SyncLogEntry)
                .outerjoin(Album, Track.album_id == Album.id)
                .outerjoin(Artist, Track.artist_id == Artist.id)
                .outerjoin(SyncLogEntry, SyncLogEntry.track_id == Track.id)
                .where(Track.id.in_(ids))
                .order_by(
                    Artist.name,
                    Album.title,
                    Track.disc_number,
                    Track.track_number,
                    Track.title,
                )
            )
            return [tuple(row) for row in session.execute(stmt)]

    # =========================================================================
    # Playlists
    # =========================================================================

    def create_playlist(self, name: str, track_ids: Sequence[int] = ()) -> Playlist:
        """Create a manual playlist with tracks in the given order."""
        with self.get_session() as session:
            playlist = Playlist(name=name)
            for position, track_id in enumerate(track_ids):
                playlist.playlist_tracks.append(
                    PlaylistTrack(track_id=track_id, position=position)
                )
            session.add(playlist)
            session.commit()
            logger.debug("Created playlist: %s (ID: %s)", name, playlist.id)
            return playlist

    def add_track_to_playlist(self, playlist_id: int, track_id: int) -> None:
        """Append a track to the end of a playlist."""
        with self.get_session() as session:
            max_position = session.scalar(
                select(func.max(PlaylistTrack.position)).where(
                    PlaylistTrack.playlist_id == playlist_id
                )
            )
            next_position = 0 if max_position is None else max_position + 1
            session.add(
                PlaylistTrack(
                    playlist_id=playlist_id, track_id=track_id, position=next_position
                )
            )
            session.commit()

    def get_all_playlists(self) -> List[Playlist]:
        """Get manual playlists ordered by name."""
        with self.get_session() as session:
            return list(session.scalars(select(Playlist).order_by(Playlist.name)))

    def get_playlist_track_ids(self, playlist_id: int) -> List[int]:
        """Get the track IDs of a playlist in playlist order."""
        with self.get_session() as session:
            stmt = (
                select(PlaylistTrack.track_id)
                .where(PlaylistTrack.playlist_id == playlist_id)
                .order_by(PlaylistTrack.position, PlaylistTrack.id)
            )
            return list(session.scalars(stmt))

    def create_smart_playlist(
        self,
        name: str,
        rules: Sequence[Tuple[SmartPlaylistField, SmartPlaylistOperator, str]],
    ) -> SmartPlaylist:
        """Create a smart playlist from (field, operator, value) rules."""
        with self.get_session() as session:
            smart_playlist = SmartPlaylist(name=name)
            for position, (field, operator, value) in enumerate(rules):
                smart_playlist.rules.append(
                    SmartPlaylistRule(
                        field=field.value,
                        operator=operator.value,
                        value=value,
                        position=position,
                    )
                )
            session.add(smart_playlist)
            session.commit()
            return smart_playlist

    def get_all_smart_playlists(self) -> List[SmartPlaylist]:
        """Get smart playlists ordered by name."""
        with self.get_session() as session:
            stmt = select(SmartPlaylist).order_by(SmartPlaylist.name)
            return list(session.scalars(stmt))

    def get_smart_playlist_track_ids(self, smart_playlist_id: int) -> List[int]:
        """Evaluate a smart playlist's rules.

        Rules are AND-ed together. A playlist without rules is empty.

        Returns:
            Track IDs ordered by play count (descending), then title
        """
        with self.get_session() as session:
            rules = list(
                session.scalars(
                    select(SmartPlaylistRule)
                    .where(SmartPlaylistRule.smart_playlist_id == smart_playlist_id)
                    .order_by(SmartPlaylistRule.position)
                )
            )
            if not rules:
                return []

            conditions = [self._rule_condition(rule) for rule in rules]
            stmt = (
                select(Track.id)
                .outerjoin(Artist, Artist.id == Track.artist_id)
                .where(and_(*conditions))
                .order_by(Track.play_count.desc(), Track.title)
            )
            return list(session.scalars(stmt))

    @staticmethod
    def _rule_condition(rule: SmartPlaylistRule) -> ColumnElement[bool]:
        """Translate one smart playlist rule into a SQL condition."""
        try:
            field = SmartPlaylistField(rule.field)
            operator = SmartPlaylistOperator(rule.operator)
        except ValueError:
            logger.warning(
                "Unknown smart playlist rule %s/%s", rule.field, rule.operator
            )
            return false()

        if field == SmartPlaylistField.IS_FAVORITE:
            return Track.is_favorite.is_(True)

        if field in (SmartPlaylistField.ARTIST, SmartPlaylistField.GENRE):
            column = Artist.name if field == SmartPlaylistField.ARTIST else Track.genre
            if operator == SmartPlaylistOperator.CONTAINS:
                return column.contains(rule.value, autoescape=True)
            return column == rule.value

        value: Any
        try:
            if field == SmartPlaylistField.PLAY_COUNT:
                column, value = Track.play_count, int(rule.value)
            elif field == SmartPlaylistField.BPM:
                column, value = Track.bpm, float(rule.value)
            elif field == SmartPlaylistField.DATE_ADDED:
                column, value = Track.date_added, datetime.fromisoformat(rule.value)
            else:
                column, value = Track.last_played_at, datetime.fromisoformat(rule.value)
        except ValueError:
            logger.warning("Invalid value %r for smart playlist rule", rule.value)
            return false()

        if operator == SmartPlaylistOperator.GREATER_THAN:
            return column > value
        if operator == SmartPlaylistOperator.LESS_THAN:
            return column < value
        if operator == SmartPlaylistOperator.EQUALS:
            return column == value

        logger.warning("Operator %s not supported for %s", operator.value, field.value)
        return false()

    # =========================================================================
    # Settings
    # =========================================================================

    def load_sync_settings(
        self, defaults: Optional[SyncSettings] = None
    ) -> SyncSettings:
        """Load sync settings, falling back to ``defaults`` for missing keys."""
        with self.get_session() as session:
            rows = {row.key: row.value for row in session.scalars(select(SyncSetting))}
        return SyncSettings.from_rows(rows, defaults)

    def save_sync_settings(self, settings: SyncSettings) -> None:
        """Persist sync settings."""
        with self.get_session() as session:
            for key, value in settings.to_rows().items():
                session.merge(SyncSetting(key=key, value=value))
            session.commit()
        logger.info("Saved sync settings")
