"""M3U8 playlist export to the device's ``Playlists/`` directory."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Mapping, Optional, Set

from ...database.service import DatabaseService
from .fileops import remove_file, write_text_atomic
from .layout import DeviceLayout
from .paths import sanitize

if TYPE_CHECKING:
    from ..sync.cancellation import CancellationToken

logger = logging.getLogger(__name__)

M3U8_HEADER = "#EXTM3U"
PLAYLIST_EXTENSION = ".m3u8"


def generate_m3u8(device_paths: Iterable[str]) -> str:
    """Render ordered device paths as M3U8 text.

    Each path is written with exactly one leading slash so the device
    resolves it from its root.
    """
    lines = [M3U8_HEADER]
    lines.extend("/" + path.lstrip("/") for path in device_paths)
    return "\n".join(lines) + "\n"


def playlist_filename(name: str) -> str:
    """File name of the exported playlist called ``name``."""
    return sanitize(name) + PLAYLIST_EXTENSION


@dataclass
class PlaylistExportResult:
    """Outcome of one playlist export."""

    written: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped_empty: int = 0

    def get_summary(self) -> str:
        """Get human-readable summary."""
        return (
            f"Playlists: {len(self.written)} written, "
            f"{len(self.removed)} stale removed, {self.skipped_empty} empty skipped"
        )


class PlaylistExporter:
    """Writes manual and smart playlists containing tracks present on the device."""

    def __init__(self, db_service: DatabaseService, layout: DeviceLayout):
        """Initialize exporter.

        Args:
            db_service: Library store providing playlists and smart rules
            layout: Layout of the mounted device
        """
        self.db_service = db_service
        self.layout = layout

    def export_all(
        self,
        resolved_ids: Set[int],
        logs_by_track: Mapping[int, str],
        cancel_token: Optional["CancellationToken"] = None,
    ) -> PlaylistExportResult:
        """Export every non-empty playlist and delete stale playlist files.

        Manual playlists are exported first, then smart playlists. A track is
        included only if it is in the resolved set and has a device path.
        Later playlists overwrite earlier ones that sanitize to the same
        file name.

        Args:
            resolved_ids: Track ids selected for the device
            logs_by_track: Device path (no leading slash) per synced track id
            cancel_token: Checked before each playlist is written

        Returns:
            PlaylistExportResult listing written and removed file names

        Raises:
            SyncCancelledError: If cancellation is requested between playlists
            OSError: If a playlist file cannot be written
        """
        result = PlaylistExportResult()
        written: Set[str] = set()

        candidates = [
            (playlist.name, self.db_service.get_playlist_track_ids(playlist.id))
            for playlist in self.db_service.get_all_playlists()
        ]
        candidates.extend(
            (smart.name, self.db_service.get_smart_playlist_track_ids(smart.id))
            for smart in self.db_service.get_all_smart_playlists()
        )

        for name, track_ids in candidates:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            paths = [
                logs_by_track[track_id]
                for track_id in track_ids
                if track_id in resolved_ids and track_id in logs_by_track
            ]
            if not paths:
                logger.debug("Skipping empty playlist: %s", name)
                result.skipped_empty += 1
                continue

            filename = playlist_filename(name)
            target = self.layout.playlists_dir / filename
            write_text_atomic(target, generate_m3u8(paths))
            if filename not in written:
                written.add(filename)
                result.written.append(filename)
            logger.debug("Wrote playlist %s (%d tracks)", filename, len(paths))

        result.removed = self._remove_stale(written)
        logger.info(result.get_summary())
        return result

    def _remove_stale(self, keep: Set[str]) -> List[str]:
        """Delete ``.m3u8`` files in the playlist directory not in ``keep``."""
        directory: Path = self.layout.playlists_dir
        if not directory.is_dir():
            return []

        removed = []
        for path in sorted(directory.glob("*" + PLAYLIST_EXTENSION)):
            if path.name in keep or not path.is_file():
                continue
            try:
                if remove_file(path):
                    removed.append(path.name)
            except OSError as e:
                logger.warning("Could not remove stale playlist %s: %s", path, e)
        return removed
