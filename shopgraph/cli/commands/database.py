"""Database management commands."""


import click
from sqlalchemy.exc import SQLAlchemyError

from shopgraph.cli.utils import coro, error, info, success


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def init() -> None:
    """Create the catalog tables if they do not exist."""
    from shopgraph.infra.database import close_database, engine, init_database

    info(f"Database: {engine.url.render_as_string(hide_password=True)}")
    try:
        await init_database(force=True)
    except SQLAlchemyError as e:
        error(f"Failed to create tables: {e}")
        raise click.exceptions.Exit(1) from e
    finally:
        await close_database()
    success("Catalog tables ready")
