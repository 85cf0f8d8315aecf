"""Two-way merge of listening statistics through the device changelog.

The device identifies files by path and the library by row id; the current
sync log entry of each track is the bridge between the two.
"""

import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ...database.service import DatabaseService, TrackStatisticsUpdate
from ..device import changelog
from ..device.fileops import write_text_atomic
from ..device.layout import DeviceLayout
from .errors import ChangelogWriteError
from .selection import TrackSyncRecord

logger = logging.getLogger(__name__)

# Device ratings run 0-10; this and above count as a favorite
FAVORITE_RATING_THRESHOLD = 8
FAVORITE_RATING = 10


@dataclass
class MergeResult:
    """Result of pulling statistics from the device."""

    changelog_found: bool = False
    entries_read: int = 0
    tracks_matched: int = 0
    tracks_updated: int = 0
    updates: List[TrackStatisticsUpdate] = dataclass_field(default_factory=list)

    def get_summary(self) -> Dict[str, int]:
        """Get summary statistics."""
        return {
            "entries_read": self.entries_read,
            "tracks_matched": self.tracks_matched,
            "tracks_updated": self.tracks_updated,
        }


def merge_last_played(
    local: Optional[datetime], device: Optional[datetime]
) -> Optional[datetime]:
    """Later of two timestamps, where ``None`` means never played."""
    if local is None:
        return device
    if device is None:
        return local
    return max(local, device)


def merge_statistics(
    record: TrackSyncRecord, entry: changelog.ChangelogEntry
) -> Optional[TrackStatisticsUpdate]:
    """Merge one device entry into a track's statistics.

    Play count and last played never decrease and a favorite is never
    cleared.

    Returns:
        The update to store, or None when nothing changes
    """
    play_count = max(record.play_count, entry.play_count)
    last_played_at = merge_last_played(record.last_played_at, entry.last_played_at)
    is_favorite = record.is_favorite or entry.rating >= FAVORITE_RATING_THRESHOLD

    if (
        play_count == record.play_count
        and last_played_at == record.last_played_at
        and is_favorite == record.is_favorite
    ):
        return None
    return (record.track_id, play_count, last_played_at, is_favorite)


class ChangelogMerger:
    """Pulls device statistics into the library and pushes them back."""

    def __init__(self, db_service: DatabaseService, layout: DeviceLayout):
        """Initialize merger.

        Args:
            db_service: Library store receiving merged statistics
            layout: Layout of the mounted device
        """
        self.db_service = db_service
        self.layout = layout

    def read_device_changelog(self) -> Optional[List[changelog.ChangelogEntry]]:
        """Read and parse the device changelog.

        Returns:
            Parsed entries, or None if the file is absent or unreadable
        """
        path = self.layout.changelog_path
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No changelog on device at %s", path)
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable changelog %s: %s", path, e)
            return None
        return changelog.parse(text)

    def pull_from_device(self, records: Sequence[TrackSyncRecord]) -> MergeResult:
        """Merge device play counts, ratings and last played into the library.

        Only tracks that already have a sync log entry can be matched. All
        changed tracks are written in one transaction after the file has
        been read.

        Args:
            records: Resolved tracks of the current pass

        Returns:
            MergeResult describing what was merged
        """
        result = MergeResult()
        entries = self.read_device_changelog()
        if entries is None:
            return result

        result.changelog_found = True
        result.entries_read = len(entries)
        lookup = changelog.build_lookup(entries)

        for record in records:
            if record.sync_log is None:
                continue
            entry = lookup.get("/" + record.sync_log.device_path)
            if entry is None:
                continue
            result.tracks_matched += 1
            update = merge_statistics(record, entry)
            if update is not None:
                result.updates.append(update)

        result.tracks_updated = self.db_service.update_track_statistics(
            result.updates
        )
        logger.info(
            "Changelog pull: %d entries, %d matched, %d updated",
            result.entries_read,
            result.tracks_matched,
            result.tracks_updated,
        )
        return result

    def build_entries(
        self, records: Sequence[TrackSyncRecord]
    ) -> List[changelog.ChangelogEntry]:
        """Build one changelog entry per record that is on the device."""
        entries = []
        for record in records:
            if record.sync_log is None:
                continue
            entries.append(
                changelog.ChangelogEntry(
                    filename="/" + record.sync_log.device_path,
                    play_count=record.play_count,
                    rating=FAVORITE_RATING if record.is_favorite else 0,
                    play_time=int(record.duration * record.play_count * 1000),
                    last_played=changelog.datetime_to_epoch(record.last_played_at),
                )
            )
        return entries

    def push_to_device(self, records: Sequence[TrackSyncRecord]) -> int:
        """Write current library statistics to the device changelog.

        Args:
            records: Resolved tracks, reloaded after copying so their sync
                log entries are current

        Returns:
            Number of entries written

        Raises:
            ChangelogWriteError: If the file cannot be written
        """
        entries = self.build_entries(records)
        path = self.layout.changelog_path
        try:
            write_text_atomic(path, changelog.serialize(entries))
        except OSError as e:
            raise ChangelogWriteError(f"Failed to write changelog: {e}") from e

        logger.info("Wrote %d changelog entries to %s", len(entries), path)
        return len(entries)
