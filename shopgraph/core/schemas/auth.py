"""Caller identity schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Authenticated caller derived from a verified JWT.

    Authorization only looks at ``roles``; remaining claims are kept for logging.
    """

    subject: str = Field(min_length=1, max_length=255, description="Token subject (sub claim)")
    roles: frozenset[str] = Field(default_factory=frozenset, description="Granted roles")
    claims: dict[str, Any] = Field(default_factory=dict, description="Raw verified claims")

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    @classmethod
    def anonymous(cls) -> Identity:
        return cls(subject="anonymous")

    @property
    def is_anonymous(self) -> bool:
        return self.subject == "anonymous" and not self.roles

    def has_any_role(self, roles: list[str] | set[str] | frozenset[str]) -> bool:
        return bool(self.roles.intersection(roles))


__all__ = ["Identity"]
