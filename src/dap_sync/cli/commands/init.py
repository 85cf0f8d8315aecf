"""Library database setup shared by every command."""

import logging
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from ...config import Config
from ...database import DatabaseService

console = Console()
logger = logging.getLogger(__name__)


class InitializationError(Exception):
    """Raised when the library database cannot be opened."""

    pass


def _open_database(config: Config) -> Tuple[DatabaseService, bool]:
    """Open the library database, creating missing tables.

    Returns:
        The service and whether the schema had to be created
    """
    try:
        db_service = DatabaseService(db_path=config.database_path)
        created = not db_service.is_initialized()
        if created:
            logger.info("Creating library schema at %s", config.database_path)
            db_service.init_db()
        return db_service, created
    except Exception as e:
        logger.exception("Could not open library database")
        raise InitializationError(
            f"Could not open library database {config.database_path}: {e}"
        ) from e


def init_db(config: Optional[Config] = None) -> DatabaseService:
    """Open the library database for a command.

    Raises:
        InitializationError: If the database cannot be opened or created
    """
    db_service, _ = _open_database(config or Config())
    return db_service


@click.command("init")
def init_command() -> None:
    """Create the library database and show what it contains.

    Examples:
        dap-sync init
    """
    config = Config()
    try:
        db_service, created = _open_database(config)
    except InitializationError as e:
        raise click.ClickException(str(e))

    state = "created" if created else "found"
    console.print(
        f"[green]✓ Database ready at {config.database_path} ({state})[/green]\n"
    )

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="green", justify="right")
    for name, count in db_service.get_statistics().items():
        table.add_row(name.replace("_", " ").title(), str(count))
    console.print(table)
