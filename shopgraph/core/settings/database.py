"""Database settings for the SQLAlchemy async engine."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Catalog store connection settings.

    Environment variables use DB_ prefix.
    Example: DB_URL=sqlite+aiosqlite:///./shop.db, DB_ECHO=true
    """

    url: str = Field(
        default="sqlite+aiosqlite:///./shopgraph.db",
        min_length=1,
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(
        default=False,
        description="Log emitted SQL statements",
    )
    create_tables: bool = Field(
        default=True,
        description="Create catalog tables on startup (schema migrations are managed elsewhere)",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
