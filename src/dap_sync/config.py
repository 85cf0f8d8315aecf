"""Configuration management for the DAP sync application."""

import os
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

# Load .env file from config directory or project root
_config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if _config_env.exists():
    load_dotenv(_config_env)
else:
    load_dotenv()


DEFAULT_AUDIO_EXTENSIONS = (
    ".mp3",
    ".flac",
    ".m4a",
    ".ogg",
    ".opus",
    ".wav",
    ".aiff",
)


def _parse_extensions(raw: str) -> Tuple[str, ...]:
    """Parse a comma separated extension list into normalized suffixes."""
    extensions = []
    for item in raw.split(","):
        item = item.strip().lower()
        if not item:
            continue
        if not item.startswith("."):
            item = f".{item}"
        extensions.append(item)
    return tuple(extensions) or DEFAULT_AUDIO_EXTENSIONS


class Config:
    """Application configuration."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        app_home = Path.home() / ".dap-sync"

        # Database settings
        self.database_path = Path(
            os.getenv("DAP_SYNC_DATABASE_PATH", str(app_home / "library.db"))
        )

        # Device defaults (persisted sync settings take precedence once saved)
        self.default_mount_path = os.getenv("DAP_SYNC_MOUNT_PATH", "/Volumes/ROCKBOX")

        # Rockbox themes installed to the device when theme sync is enabled
        self.themes_directory = Path(
            os.getenv("DAP_SYNC_THEMES_DIRECTORY", str(app_home / "themes"))
        )

        # Library scanning
        self.audio_extensions = _parse_extensions(
            os.getenv("DAP_SYNC_AUDIO_EXTENSIONS", ",".join(DEFAULT_AUDIO_EXTENSIONS))
        )

        # Logging
        log_file = os.getenv("DAP_SYNC_LOG_FILE")
        self.log_file = Path(log_file) if log_file else None

        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Ensure required directories exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def get_config() -> Config:
    """Get application configuration."""
    return Config()
