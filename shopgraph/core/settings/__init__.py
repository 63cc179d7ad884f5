"""Modular Pydantic Settings v2 configuration.

One frozen settings class per domain, each with its own environment prefix,
loaded through LRU-cached getters:
    from shopgraph.core.settings import get_pagination_settings
"""

from __future__ import annotations

from .app import AppSettings
from .auth import AuthSettings
from .client import ClientSettings
from .database import DatabaseSettings
from .graphql import GraphQLSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_auth_settings,
    get_client_settings,
    get_db_settings,
    get_graphql_settings,
    get_logging_settings,
    get_pagination_settings,
)
from .logs import LoggingSettings
from .pagination import PaginationSettings

__all__ = [
    "AppSettings",
    "AuthSettings",
    "ClientSettings",
    "DatabaseSettings",
    "GraphQLSettings",
    "LoggingSettings",
    "PaginationSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_auth_settings",
    "get_client_settings",
    "get_db_settings",
    "get_graphql_settings",
    "get_logging_settings",
    "get_pagination_settings",
]
