"""Request-scoped database session.

Tests swap this dependency through ``app.dependency_overrides`` to point the
GraphQL endpoint at their own engine.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from shopgraph.infra.database import get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """One session per GraphQL request; CatalogService commits its own writes."""
    async with get_async_session() as session:
        yield session
