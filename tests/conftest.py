"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests self-contained
    - Settings/State Fixtures: cached settings and the event broker are reset per test
    - Database Fixtures: in-memory SQLite engine, session factory and session
    - Identity Fixtures: callers with and without write roles
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Iterator
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DB_CREATE_TABLES", "true")
os.environ.setdefault("PAGINATION_CURSOR_SECRET", "test-cursor-secret")
os.environ.setdefault("AUTH_JWT_SECRET", "test-jwt-secret-with-at-least-32-bytes")


# ============================================================================
# Settings/State Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_state() -> Iterator[None]:
    """Reload settings and start every test with an empty event broker."""
    from shopgraph.core.pagination import get_cursor_codec
    from shopgraph.core.settings import clear_all_caches
    from shopgraph.infra.events import reset_event_broker

    clear_all_caches()
    get_cursor_codec.cache_clear()
    reset_event_broker()
    yield
    clear_all_caches()
    get_cursor_codec.cache_clear()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite and catalog tables.

    StaticPool keeps one connection, so every session sees the same database.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    from shopgraph.core.database import Base
    import shopgraph.features.catalog.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a session; uncommitted work is rolled back after the test."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Identity Fixtures
# ============================================================================


@pytest.fixture
def admin():
    """Identity allowed to run every catalog mutation."""
    from shopgraph.core.schemas.auth import Identity

    return Identity(subject="admin-1", roles=frozenset({"admin"}))


@pytest.fixture
def sales():
    """Identity that may create and update customers and orders only."""
    from shopgraph.core.schemas.auth import Identity

    return Identity(subject="sales-1", roles=frozenset({"sales"}))


@pytest.fixture
def viewer():
    """Identity without any write role."""
    from shopgraph.core.schemas.auth import Identity

    return Identity(subject="viewer-1", roles=frozenset({"viewer"}))
