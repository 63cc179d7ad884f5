"""CLI command modules."""

from shopgraph.cli.commands import catalog, config, database, server

__all__ = [
    "catalog",
    "config",
    "database",
    "server",
]
