"""Shared schemas."""

from shopgraph.core.schemas.auth import Identity
from shopgraph.core.schemas.entity import Entity, EntityRef, EntityType

__all__ = ["Entity", "EntityRef", "EntityType", "Identity"]
