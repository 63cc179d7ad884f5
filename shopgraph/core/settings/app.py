"""Process-level settings for the API server (APP_ prefix)."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """Identity of the service and the address uvicorn binds to.

    In ``production`` internal error messages are masked in GraphQL responses
    and ``debug`` is refused.
    """

    service_name: str = Field(default="shopgraph", pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$")
    title: str = "ShopGraph API"
    description: str = "Products, customers and orders over GraphQL with cursor pagination"
    version: str = Field(default="1.0.0", pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$")
    environment: Environment = "development"
    debug: bool = Field(default=False, description="FastAPI debug mode; also echoes SQL")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=list, description="JSON array of allowed origins")

    @model_validator(mode="after")
    def _no_debug_in_production(self) -> AppSettings:
        if self.environment == "production" and self.debug:
            msg = "APP_DEBUG cannot be enabled when APP_ENVIRONMENT=production"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        extra="ignore",
        frozen=True,
        env_ignore_empty=True,
    )
