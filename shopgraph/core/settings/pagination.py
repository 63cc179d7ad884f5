"""Pagination settings for connection queries.

Centralizes the page size limits and the cursor signing key so every
connection resolves with the same rules.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_PAGE_SIZE=20, PAGINATION_MAX_PAGE_SIZE=100
"""

from __future__ import annotations

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_page_size: Page size used when neither first nor last is given.
        max_page_size: Largest accepted first/last value. Larger requests are rejected.
        tie_break_field: Unique field appended to every sort order.
        cursor_secret: Key for the cursor checksum.
    """

    default_page_size: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Default page size when first/last not specified",
    )
    max_page_size: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum allowed page size (larger requests are rejected)",
    )
    tie_break_field: str = Field(
        default="id",
        min_length=1,
        description="Unique field appended to every sort specification",
    )
    cursor_secret: SecretStr = Field(
        default=SecretStr("change-me-cursor-secret"),
        description="Key used to checksum cursors",
    )

    @model_validator(mode="after")
    def validate_default_within_max(self) -> PaginationSettings:
        """Ensure the default page size is itself an accepted page size."""
        if self.default_page_size > self.max_page_size:
            msg = "default_page_size cannot exceed max_page_size"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
