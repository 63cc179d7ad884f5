"""Normalized entity representation shared by the server and the client cache."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class EntityType(StrEnum):
    """Catalog entity kinds."""

    PRODUCT = "Product"
    CUSTOMER = "Customer"
    ORDER = "Order"


class EntityRef(NamedTuple):
    """Normalized cache key of an entity."""

    type: EntityType
    id: str


class Entity(BaseModel):
    """A typed record with a store-assigned identity.

    ``fields`` never contains ``id``; use :meth:`get` to read either.
    ``pending`` marks client-side state that has not been confirmed by the server.
    """

    type: EntityType
    id: str = Field(min_length=1)
    fields: dict[str, Any] = Field(default_factory=dict)
    pending: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.type, self.id)

    def get(self, field: str, default: Any = None) -> Any:
        if field == "id":
            return self.id
        return self.fields.get(field, default)

    def merged(self, fields: dict[str, Any], *, pending: bool | None = None) -> Entity:
        """Return a copy with ``fields`` written over the current values."""
        return self.model_copy(
            update={
                "fields": {**self.fields, **fields},
                "pending": self.pending if pending is None else pending,
            }
        )


__all__ = ["Entity", "EntityRef", "EntityType"]
