"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shopgraph.core.settings import get_graphql_settings

if TYPE_CHECKING:
    from fastapi import FastAPI

    from shopgraph.core.settings.graphql import GraphQLSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, graphql_settings: GraphQLSettings | None = None) -> None:
    """Register the GraphQL endpoint with the application.

    Args:
        app: FastAPI application instance.
        graphql_settings: Optional override controlling GraphQL availability.
    """
    graphql_settings = graphql_settings or get_graphql_settings()

    if not graphql_settings.enabled:
        logger.warning("GraphQL endpoint disabled")
        return

    from shopgraph.features.graphql.router import create_graphql_router

    app.include_router(
        create_graphql_router(),
        prefix=graphql_settings.path,
        tags=["graphql"],
    )
    logger.info(
        "GraphQL endpoint enabled",
        extra={
            "path": graphql_settings.path,
            "ide": graphql_settings.graphql_ide,
            "subscriptions": graphql_settings.subscriptions_enabled,
        },
    )


__all__ = ["setup_routers"]
