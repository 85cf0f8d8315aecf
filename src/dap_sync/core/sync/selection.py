"""Selection resolution: from user-chosen targets to concrete tracks."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Set

from ...database.models import SelectionKind, SyncLogEntry, SyncSelection
from ...database.service import DatabaseService
from ..device import paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncLogSnapshot:
    """Detached copy of a track's sync log entry."""

    device_path: str
    file_size: int
    synced_at: datetime

    @classmethod
    def from_entry(cls, entry: SyncLogEntry) -> "SyncLogSnapshot":
        """Copy the fields of a sync log row."""
        return cls(
            device_path=entry.device_path,
            file_size=entry.file_size,
            synced_at=entry.synced_at,
        )


@dataclass(frozen=True)
class TrackSyncRecord:
    """A library track joined with its album, artist and sync log.

    Built once per sync pass and never mutated; the copy-or-skip decision
    and the changelog merge both read from it.
    """

    track_id: int
    title: str
    file_path: str
    file_extension: str
    track_number: Optional[int]
    disc_number: Optional[int]
    duration: float
    file_size: Optional[int]
    play_count: int
    last_played_at: Optional[datetime]
    is_favorite: bool
    album_id: Optional[int] = None
    album_title: Optional[str] = None
    album_artwork_path: Optional[str] = None
    artist_name: Optional[str] = None
    sync_log: Optional[SyncLogSnapshot] = None

    def device_path(self) -> str:
        """Where this track belongs on the device, from current metadata."""
        return paths.device_path(
            self.artist_name,
            self.album_title,
            self.track_number,
            self.disc_number,
            self.title,
            self.file_extension,
        )

    def artwork_device_path(self) -> str:
        """Where this track's album cover belongs on the device."""
        return paths.artwork_path(self.artist_name, self.album_title)


class SelectionResolver:
    """Expands sync selections into a deduplicated set of track ids."""

    def __init__(self, db_service: DatabaseService):
        self.db_service = db_service

    def resolve(self, selections: Iterable[SyncSelection]) -> Set[int]:
        """Resolve selections to track ids.

        Track selections count only while the track exists. Album and artist
        selections expand to the tracks currently belonging to them.

        Args:
            selections: Selections to expand

        Returns:
            Set of track ids, without any particular order
        """
        track_ids: Set[int] = set()
        album_ids: Set[int] = set()
        artist_ids: Set[int] = set()

        for selection in selections:
            if selection.kind == SelectionKind.TRACK.value:
                track_ids.add(selection.target_id)
            elif selection.kind == SelectionKind.ALBUM.value:
                album_ids.add(selection.target_id)
            elif selection.kind == SelectionKind.ARTIST.value:
                artist_ids.add(selection.target_id)
            else:
                logger.warning("Ignoring selection of unknown kind: %s", selection)

        resolved = self.db_service.get_existing_track_ids(track_ids)
        resolved |= self.db_service.get_track_ids_for_albums(album_ids)
        resolved |= self.db_service.get_track_ids_for_artists(artist_ids)

        logger.debug(
            "Resolved %d selections to %d tracks",
            len(track_ids) + len(album_ids) + len(artist_ids),
            len(resolved),
        )
        return resolved

    def load_records(self, track_ids: Iterable[int]) -> List[TrackSyncRecord]:
        """Load sync records for tracks, in device order.

        Returns:
            Records sorted by artist, album, disc number, track number, title
        """
        records = []
        for track, album, artist, log in self.db_service.get_track_sync_rows(
            track_ids
        ):
            records.append(
                TrackSyncRecord(
                    track_id=track.id,
                    title=track.title,
                    file_path=track.file_path,
                    file_extension=Path(track.file_path).suffix.lstrip("."),
                    track_number=track.track_number,
                    disc_number=track.disc_number,
                    duration=track.duration or 0.0,
                    file_size=track.file_size,
                    play_count=track.play_count or 0,
                    last_played_at=track.last_played_at,
                    is_favorite=bool(track.is_favorite),
                    album_id=album.id if album else None,
                    album_title=album.title if album else None,
                    album_artwork_path=album.artwork_path if album else None,
                    artist_name=artist.name if artist else None,
                    sync_log=SyncLogSnapshot.from_entry(log) if log else None,
                )
            )
        return records

    def resolve_records(self) -> List[TrackSyncRecord]:
        """Resolve all stored selections and load their records."""
        selections = self.db_service.get_all_selections()
        return self.load_records(self.resolve(selections))
