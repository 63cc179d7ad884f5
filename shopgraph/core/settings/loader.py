"""Settings loaders.

Each ``get_*_settings()`` reads the environment once and returns the same
frozen instance afterwards. Tests call ``clear_all_caches()`` after changing
environment variables.
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .auth import AuthSettings
from .client import ClientSettings
from .database import DatabaseSettings
from .graphql import GraphQLSettings
from .logs import LoggingSettings
from .pagination import PaginationSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """JWT verification and the operation -> roles policy."""
    return AuthSettings()


@lru_cache(maxsize=1)
def get_client_settings() -> ClientSettings:
    """Endpoint, timeout and provisional id prefix for ShopGraphClient."""
    return ClientSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_graphql_settings() -> GraphQLSettings:
    return GraphQLSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_pagination_settings() -> PaginationSettings:
    """Page size limits and the cursor signing secret."""
    return PaginationSettings()


_LOADERS = (
    get_app_settings,
    get_auth_settings,
    get_client_settings,
    get_db_settings,
    get_graphql_settings,
    get_logging_settings,
    get_pagination_settings,
)


def clear_all_caches() -> None:
    for loader in _LOADERS:
        loader.cache_clear()
