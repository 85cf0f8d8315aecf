"""Theme installation into the device's ``.rockbox`` directory."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .layout import DeviceLayout

logger = logging.getLogger(__name__)


@dataclass
class ThemeInstallResult:
    """Outcome of a theme install."""

    themes_installed: int = 0
    files_copied: int = 0


class ThemeInstaller:
    """Copies every theme under a local directory onto the device.

    Each entry of ``themes_directory`` is a theme laid out like the device's
    ``.rockbox`` tree (``wps/``, ``themes/``, ``fonts/``...). Files are
    merged into ``.rockbox`` and existing files are overwritten.
    """

    def __init__(self, themes_directory: Path, layout: DeviceLayout):
        self.themes_directory = themes_directory
        self.layout = layout

    def available_themes(self) -> List[Path]:
        """Theme directories found locally, sorted by name."""
        if not self.themes_directory.is_dir():
            return []
        return sorted(p for p in self.themes_directory.iterdir() if p.is_dir())

    def install_all(self) -> ThemeInstallResult:
        """Install every available theme.

        Raises:
            OSError: If a file cannot be copied
        """
        result = ThemeInstallResult()
        for theme in self.available_themes():
            result.files_copied += self._copy_tree(theme, self.layout.rockbox_dir)
            result.themes_installed += 1
            logger.info("Installed theme: %s", theme.name)
        return result

    def _copy_tree(self, source: Path, destination: Path) -> int:
        copied = 0
        for path in sorted(source.rglob("*")):
            if not path.is_file():
                continue
            target = destination / path.relative_to(source)
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
            copied += 1
        return copied
