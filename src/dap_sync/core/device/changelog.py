"""Codec for the Rockbox database changelog.

The device keeps per-file listening statistics in a line oriented text file::

    ## Changelog version 1
    filename="/Music/A/B/01 - Song.flac" playcount="5" rating="8" playtime="0" ...

Entries are keyed by device path (with a leading slash) because the device
knows nothing about library ids. Parsing is best effort and never raises;
malformed lines are dropped.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

CHANGELOG_HEADER = "## Changelog version 1"

FIELD_ORDER = ("filename", "playcount", "rating", "playtime", "lastplayed")

_LINE_STRIP = " \t\r"

logger = logging.getLogger(__name__)


def epoch_to_datetime(epoch: Optional[int]) -> Optional[datetime]:
    """Convert changelog epoch seconds to a naive UTC datetime (0 means unset)."""
    if not epoch:
        return None
    try:
        return datetime.fromtimestamp(epoch, tz=timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError, OSError):
        logger.debug("Ignoring out-of-range timestamp: %d", epoch)
        return None


def datetime_to_epoch(value: Optional[datetime]) -> Optional[int]:
    """Convert a naive UTC datetime to epoch seconds."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


@dataclass
class ChangelogEntry:
    """Statistics the device recorded for one file."""

    filename: str
    play_count: int = 0
    rating: int = 0
    play_time: int = 0  # milliseconds
    last_played: Optional[int] = None  # epoch seconds

    @property
    def last_played_at(self) -> Optional[datetime]:
        """Last played time as a naive UTC datetime."""
        return epoch_to_datetime(self.last_played)


def _scan_pairs(line: str) -> Dict[str, str]:
    """Extract ``key="value"`` pairs from one line.

    Scanning stops at the first pair that has no ``=`` or no opening quote.
    An unterminated value runs to the end of the line.
    """
    pairs: Dict[str, str] = {}
    pos = 0
    length = len(line)

    while pos < length:
        while pos < length and line[pos] == " ":
            pos += 1
        if pos >= length:
            break

        eq = line.find("=", pos)
        if eq < 0:
            break
        key = line[pos:eq]
        pos = eq + 1

        if pos >= length or line[pos] != '"':
            break
        pos += 1

        chars: List[str] = []
        escaped = False
        while pos < length:
            ch = line[pos]
            pos += 1
            if escaped:
                chars.append("\n" if ch == "n" else ch)
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                break
            else:
                chars.append(ch)

        pairs[key] = "".join(chars)

    return pairs


def _to_int(value: Optional[str]) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


def parse(text: str) -> List[ChangelogEntry]:
    """Parse changelog text into entries, in file order.

    Args:
        text: Full contents of the changelog file

    Returns:
        One entry per line that carries a non-empty ``filename``
    """
    entries: List[ChangelogEntry] = []

    for raw_line in text.split("\n"):
        line = raw_line.strip(_LINE_STRIP)
        if not line or line.startswith("##"):
            continue

        pairs = _scan_pairs(line)
        filename = pairs.get("filename")
        if not filename:
            continue

        last_played = _to_int(pairs.get("lastplayed"))
        entries.append(
            ChangelogEntry(
                filename=filename,
                play_count=_to_int(pairs.get("playcount")),
                rating=_to_int(pairs.get("rating")),
                play_time=_to_int(pairs.get("playtime")),
                last_played=last_played or None,
            )
        )

    return entries


def escape_value(value: str) -> str:
    """Escape backslashes, double quotes and newlines for a quoted value."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def serialize(entries: Iterable[ChangelogEntry]) -> str:
    """Render entries as changelog text, header first, newline terminated."""
    lines = [CHANGELOG_HEADER]

    for entry in entries:
        values = (
            entry.filename,
            str(entry.play_count),
            str(entry.rating),
            str(entry.play_time),
            str(entry.last_played or 0),
        )
        lines.append(
            " ".join(
                f'{key}="{escape_value(value)}"'
                for key, value in zip(FIELD_ORDER, values)
            )
        )

    return "\n".join(lines) + "\n"


def build_lookup(entries: Iterable[ChangelogEntry]) -> Dict[str, ChangelogEntry]:
    """Index entries by filename; a later duplicate replaces an earlier one."""
    return {entry.filename: entry for entry in entries}
