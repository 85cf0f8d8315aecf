"""Command-line interface for the DAP sync application.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import Config
from ..utils.logging_config import configure_third_party_loggers, setup_logging
from .commands import (
    init_command,
    library_group,
    select_group,
    settings_group,
    status_command,
    sync_command,
    watch_command,
)


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.pass_context
def cli(ctx: Any, log_level: str, log_file: Optional[str]) -> None:
    """DAP Sync.

    Keeps a Rockbox music player in sync with your local music library.
    """
    config = Config()
    setup_logging(
        log_level=log_level,
        log_file=Path(log_file) if log_file else config.log_file,
    )
    configure_third_party_loggers()
    ctx.ensure_object(dict)


# Register command groups and commands
cli.add_command(init_command)
cli.add_command(library_group)
cli.add_command(select_group)
cli.add_command(settings_group)
cli.add_command(sync_command)
cli.add_command(watch_command)
cli.add_command(status_command)


if __name__ == "__main__":
    cli()
