"""GraphQL router for FastAPI integration.

Provides:
- GraphQL endpoint (mounted at GRAPHQL_PATH by the app factory)
- GraphiQL or another IDE when enabled
- WebSocket support for subscriptions
- Request context with identity, session and correlation id
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, Any, cast
from uuid import uuid4

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002
from strawberry.fastapi import GraphQLRouter

from shopgraph.core.dependencies.auth import get_identity
from shopgraph.core.dependencies.database import get_db_session
from shopgraph.core.schemas.auth import Identity
from shopgraph.core.settings import get_graphql_settings
from shopgraph.features.graphql.context import GraphQLContext
from shopgraph.features.graphql.schema import schema
from shopgraph.infra.logging import set_log_context

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


async def get_graphql_context(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    identity: Annotated[Identity, Depends(get_identity)],
    x_correlation_id: Annotated[str | None, Header()] = None,
) -> GraphQLContext:
    """Create GraphQL context from FastAPI dependencies.

    Args:
        session: Database session from dependency
        identity: Verified caller (anonymous without a bearer token)
        x_correlation_id: Caller-supplied correlation id, generated when absent

    Returns:
        GraphQLContext for use in resolvers
    """
    correlation_id = x_correlation_id or str(uuid4())
    set_log_context(correlation_id=correlation_id, subject=identity.subject)
    return GraphQLContext(session=session, identity=identity, correlation_id=correlation_id)


def create_graphql_router() -> APIRouter:
    """Create GraphQL router with settings-based configuration."""
    settings = get_graphql_settings()

    subscription_protocols: Sequence[str] = ()
    if settings.subscriptions_enabled:
        subscription_protocols = (
            "graphql-transport-ws",
            "graphql-ws",
        )

    graphql_app = GraphQLRouter(
        schema,
        context_getter=cast("Any", get_graphql_context),
        subscription_protocols=subscription_protocols,
        graphql_ide=settings.graphql_ide or None,
        path="",  # the mount prefix is the endpoint path
    )

    logger.debug(
        "GraphQL router created",
        extra={"path": settings.path, "subscriptions": settings.subscriptions_enabled},
    )
    return graphql_app


__all__ = ["create_graphql_router", "get_graphql_context"]
