"""CLI display and formatting utilities."""

from .formatters import (
    build_table,
    console,
    display_scan_statistics,
    display_selections,
    display_settings,
    display_status,
    display_sync_result,
    format_timestamp,
)

__all__ = [
    "build_table",
    "console",
    "display_scan_statistics",
    "display_selections",
    "display_settings",
    "display_status",
    "display_sync_result",
    "format_timestamp",
]
