"""Authentication and authorization settings."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPERATION_ROLES: dict[str, list[str]] = {
    "createProduct": ["admin", "editor"],
    "updateProduct": ["admin", "editor"],
    "deleteProduct": ["admin"],
    "createCustomer": ["admin", "editor", "sales"],
    "updateCustomer": ["admin", "editor", "sales"],
    "deleteCustomer": ["admin"],
    "createOrder": ["admin", "editor", "sales"],
    "updateOrder": ["admin", "editor", "sales"],
    "deleteOrder": ["admin"],
}


class AuthSettings(BaseSettings):
    """JWT verification and role policy.

    Environment variables use AUTH_ prefix.
    Example: AUTH_JWT_SECRET=..., AUTH_JWT_AUDIENCE=shopgraph
    """

    jwt_secret: SecretStr = Field(
        default=SecretStr("change-me-jwt-secret"),
        description="Shared secret used to verify HS* tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Accepted JWT signing algorithm",
    )
    jwt_audience: str | None = Field(
        default=None,
        description="Expected 'aud' claim, if any",
    )
    jwt_issuer: str | None = Field(
        default=None,
        description="Expected 'iss' claim, if any",
    )
    roles_claim: str = Field(
        default="roles",
        description="Claim holding the caller's role list",
    )
    operation_roles: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_OPERATION_ROLES.items()},
        description="Roles allowed to run each mutation (JSON object). Unlisted operations are denied.",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
