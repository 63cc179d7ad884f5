"""Process-wide async engine for the catalog database (DB_URL)."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shopgraph.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()

engine = create_async_engine(db_settings.url, echo=db_settings.echo or get_app_settings().debug)

# Entities are snapshotted after commit, so attributes must stay loaded
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Session that is closed on exit; uncommitted work is rolled back."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_database(*, force: bool = False) -> None:
    """Create the catalog tables if DB_CREATE_TABLES is set or ``force`` is given."""
    if not (force or db_settings.create_tables):
        return

    from shopgraph.core.database import Base
    import shopgraph.features.catalog.models  # noqa: F401  registers tables

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Catalog tables ensured", extra={"url": engine.url.render_as_string(hide_password=True)})


async def close_database() -> None:
    await engine.dispose()
    logger.info("Database engine disposed")


__all__ = ["AsyncSessionLocal", "close_database", "engine", "get_async_session", "init_database"]
