"""Declarative base, model mixins and repository helpers."""

from shopgraph.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDStrPKMixin,
    VersionMixin,
)
from shopgraph.core.database.locks import KeyedLock
from shopgraph.core.database.repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "KeyedLock",
    "TimestampMixin",
    "UUIDStrPKMixin",
    "VersionMixin",
]
