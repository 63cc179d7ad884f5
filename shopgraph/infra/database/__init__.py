"""Async engine and session factory for the catalog database."""

from shopgraph.infra.database.session import (
    AsyncSessionLocal,
    close_database,
    engine,
    get_async_session,
    init_database,
)

__all__ = ["AsyncSessionLocal", "close_database", "engine", "get_async_session", "init_database"]
