"""SQLAlchemy database models for the music library and device sync state."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Return the current time as a naive UTC datetime (SQLite storage form)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SelectionKind(str, Enum):
    """What a sync selection points at."""

    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"


class SmartPlaylistField(str, Enum):
    """Track attributes a smart playlist rule can match on."""

    PLAY_COUNT = "play_count"
    IS_FAVORITE = "is_favorite"
    ARTIST = "artist"
    GENRE = "genre"
    DATE_ADDED = "date_added"
    LAST_PLAYED_AT = "last_played_at"
    BPM = "bpm"


class SmartPlaylistOperator(str, Enum):
    """Comparison operators for smart playlist rules."""

    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EQUALS = "equals"
    CONTAINS = "contains"
    IS_TRUE = "is_true"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Artist(Base):
    """A library artist."""

    __tablename__ = "artists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)

    albums: Mapped[List["Album"]] = relationship("Album", back_populates="artist")
    tracks: Mapped[List["Track"]] = relationship("Track", back_populates="artist")

    def __repr__(self) -> str:
        """String representation of Artist."""
        return f"<Artist(id={self.id}, name='{self.name}')>"


class Album(Base):
    """A library album, optionally carrying local artwork."""

    __tablename__ = "albums"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    artist_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("artists.id", ondelete="SET NULL"), nullable=True
    )
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    artwork_path: Mapped[Optional[str]] = mapped_column(
        String(1000), nullable=True
    )  # Absolute path to a local image file

    artist: Mapped[Optional["Artist"]] = relationship(
        "Artist", back_populates="albums"
    )
    tracks: Mapped[List["Track"]] = relationship("Track", back_populates="album")

    __table_args__ = (
        UniqueConstraint("title", "artist_id", name="uq_album_title_artist"),
    )

    def __repr__(self) -> str:
        """String representation of Album."""
        return f"<Album(id={self.id}, title='{self.title}')>"


class Track(Base):
    """A library track backed by a local audio file."""

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # File information
    file_path: Mapped[str] = mapped_column(
        String(1000), nullable=False, unique=True
    )  # Absolute path of the source audio file
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Metadata
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    album_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="SET NULL"), nullable=True
    )
    artist_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("artists.id", ondelete="SET NULL"), nullable=True
    )
    genre: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    track_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    disc_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )  # seconds
    bpm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    date_added: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    # Listening statistics (merged with the device changelog)
    play_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_played_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    album: Mapped[Optional["Album"]] = relationship("Album", back_populates="tracks")
    artist: Mapped[Optional["Artist"]] = relationship(
        "Artist", back_populates="tracks"
    )
    sync_log: Mapped[Optional["SyncLogEntry"]] = relationship(
        "SyncLogEntry",
        back_populates="track",
        cascade="all, delete-orphan",
        uselist=False,
    )
    playlist_tracks: Mapped[List["PlaylistTrack"]] = relationship(
        "PlaylistTrack", back_populates="track", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_track_album", "album_id"),
        Index("idx_track_artist", "artist_id"),
    )

    def __repr__(self) -> str:
        """String representation of Track."""
        return f"<Track(id={self.id}, title='{self.title}')>"


class Playlist(Base):
    """A manually ordered playlist."""

    __tablename__ = "playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    date_created: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    playlist_tracks: Mapped[List["PlaylistTrack"]] = relationship(
        "PlaylistTrack",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistTrack.position",
    )

    def __repr__(self) -> str:
        """String representation of Playlist."""
        return f"<Playlist(id={self.id}, name='{self.name}')>"


class PlaylistTrack(Base):
    """Ordered membership of a track in a playlist."""

    __tablename__ = "playlist_tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False
    )
    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    playlist: Mapped["Playlist"] = relationship(
        "Playlist", back_populates="playlist_tracks"
    )
    track: Mapped["Track"] = relationship("Track", back_populates="playlist_tracks")

    __table_args__ = (
        UniqueConstraint("playlist_id", "track_id", name="uq_playlist_track"),
        Index("idx_playlist_position", "playlist_id", "position"),
    )


class SmartPlaylist(Base):
    """A playlist whose tracks are computed from rules."""

    __tablename__ = "smart_playlists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    date_created: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    rules: Mapped[List["SmartPlaylistRule"]] = relationship(
        "SmartPlaylistRule",
        back_populates="smart_playlist",
        cascade="all, delete-orphan",
        order_by="SmartPlaylistRule.position",
    )

    def __repr__(self) -> str:
        """String representation of SmartPlaylist."""
        return f"<SmartPlaylist(id={self.id}, name='{self.name}')>"


class SmartPlaylistRule(Base):
    """One AND-ed condition of a smart playlist."""

    __tablename__ = "smart_playlist_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    smart_playlist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("smart_playlists.id", ondelete="CASCADE"), nullable=False
    )
    field: Mapped[str] = mapped_column(String(30), nullable=False)
    operator: Mapped[str] = mapped_column(String(30), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    smart_playlist: Mapped["SmartPlaylist"] = relationship(
        "SmartPlaylist", back_populates="rules"
    )


class SyncSelection(Base):
    """A user-chosen track, album or artist marked for the device."""

    __tablename__ = "sync_selections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(
        String(10), nullable=False
    )  # Enum: track, album, artist
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("kind", "target_id", name="uq_sync_selection"),
    )

    def __repr__(self) -> str:
        """String representation of SyncSelection."""
        return f"<SyncSelection(kind='{self.kind}', target_id={self.target_id})>"


class SyncLogEntry(Base):
    """Where and when a track was last written to the device."""

    __tablename__ = "sync_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    track_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tracks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    device_path: Mapped[str] = mapped_column(
        String(1000), nullable=False
    )  # Relative to the mount root, no leading slash
    synced_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now
    )
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    track: Mapped["Track"] = relationship("Track", back_populates="sync_log")

    def __repr__(self) -> str:
        """String representation of SyncLogEntry."""
        return (
            f"<SyncLogEntry(track_id={self.track_id}, "
            f"device_path='{self.device_path}', file_size={self.file_size})>"
        )


class SyncSetting(Base):
    """Key/value persistence for device sync settings."""

    __tablename__ = "sync_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
