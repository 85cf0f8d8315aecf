"""Logging configuration for the DAP sync application."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional

_CONSOLE_FORMAT = "%(asctime)s - %(location)-28s - %(levelname)s - %(message)s"
_FILE_FORMAT = (
    "%(asctime)s - %(threadName)-12s - %(location)-28s - "
    "%(levelname)-8s - %(message)s"
)


class LocationFormatter(logging.Formatter):
    """Formatter that exposes ``filename:lineno`` as a single field."""

    def format(self, record: Any) -> str:
        """Format log record with combined location field."""
        record.location = f"{record.filename}:{record.lineno}"
        return super().format(record)


class ColoredFormatter(LocationFormatter):
    """Colored log formatter for console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record: Any) -> str:
        """Format log record with a colored, padded level name."""
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        levelname = record.levelname
        record.levelname = f"{color}{levelname:<8}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = levelname


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
    max_file_size: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> None:
    """Set up application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating log file
        console_output: Whether to log to stderr
        max_file_size: Maximum size of the log file before rotation
        backup_count: Number of rotated log files to keep
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    if console_output:
        # stderr keeps log lines out of the rich console output on stdout
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            ColoredFormatter(fmt=_CONSOLE_FORMAT, datefmt="%H:%M:%S")
        )
        root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            LocationFormatter(fmt=_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized - Level: %s", log_level)
    if log_file:
        logger.info("Log file: %s", log_file)


def configure_third_party_loggers() -> None:
    """Keep chatty third-party loggers at WARNING."""
    for name in (
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "sqlalchemy.orm",
        "mutagen",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)
