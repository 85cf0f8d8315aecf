"""Small filesystem helpers shared by the device writers."""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def write_text_atomic(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via a temporary sibling and ``os.replace``.

    Readers never observe a partially written file. Parent directories are
    created as needed; any ``OSError`` propagates to the caller.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def remove_file(path: Path) -> bool:
    """Delete a file, treating an already missing file as success.

    Returns:
        True if a file was deleted, False if it did not exist

    Raises:
        OSError: For any failure other than the file being absent
    """
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug("Already absent: %s", path)
        return False
    return True


def prune_empty_directories(root: Path) -> int:
    """Remove empty directories below ``root``, deepest first.

    ``root`` itself is kept. A directory that still has content, or that
    cannot be removed, is left in place.

    Returns:
        Number of directories removed
    """
    if not root.is_dir():
        return 0

    removed = 0
    for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
        directory = Path(dirpath)
        if directory == root:
            continue
        try:
            directory.rmdir()
        except OSError:
            continue
        removed += 1
        logger.debug("Pruned empty directory: %s", directory)

    return removed
