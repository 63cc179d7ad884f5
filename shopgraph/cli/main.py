"""Main CLI entry point for shopgraph management commands."""

import click

from shopgraph.cli.commands import catalog, config, database, server
from shopgraph.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="1.0.0", prog_name="shopgraph")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """shopgraph CLI - run the GraphQL catalog API and work with its data.

    \b
    Command Groups:
      server     Run the API
      db         Create the catalog tables
      config     Show effective settings
      catalog    List, show, create, update and delete catalog entities

    \b
    Quick Start:
      shopgraph db init
      shopgraph server run --reload
      shopgraph catalog list product --sort price:desc --first 10
      shopgraph catalog create product --set name=Pen --set sku=PEN-1 --set price=1.50
    """
    ctx.ensure_object(dict)


cli.add_command(server.server)
cli.add_command(database.db)
cli.add_command(config.config)
cli.add_command(catalog.catalog)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
