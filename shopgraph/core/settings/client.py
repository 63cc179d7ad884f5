"""Settings for the optimistic GraphQL client."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client-side transport and reconciliation settings.

    Environment variables use CLIENT_ prefix.
    Example: CLIENT_ENDPOINT=http://localhost:8000/graphql, CLIENT_MUTATION_TIMEOUT=5
    """

    endpoint: str = Field(
        default="http://localhost:8000/graphql",
        description="GraphQL endpoint URL",
    )
    mutation_timeout: float = Field(
        default=10.0,
        gt=0,
        le=300.0,
        description="Seconds before a pending mutation is failed and rolled back",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300.0,
        description="HTTP request timeout in seconds",
    )
    provisional_prefix: str = Field(
        default="tmp:",
        min_length=1,
        description="Prefix of client-generated provisional ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
