"""Helpers shared by the click commands."""

from shopgraph.cli.utils.async_runner import coro
from shopgraph.cli.utils.formatters import error, header, info, success, table, warning

__all__ = ["coro", "error", "header", "info", "success", "table", "warning"]
