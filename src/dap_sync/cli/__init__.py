"""Command-line interface for the DAP sync application."""
