"""Generic async repository over one SQLAlchemy model.

The session is always passed in by the caller, so a service can run several
repository calls inside one transaction. Anything beyond primary-key access
(keyset pages, counts) goes through the session or an OrderedSource directly.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from shopgraph.core.exceptions import NotFoundException
from shopgraph.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Primary-key reads and flushed writes for ``model``."""

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        name = f"shopgraph.repository.{model.__name__}"
        self._logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)

    @property
    def _name(self) -> str:
        return self.model.__name__

    async def get(self, session: AsyncSession, key: Any) -> T | None:
        instance = await session.get(self.model, key)
        self._lazy.debug(lambda: f"get {self._name}[{key}]: {'hit' if instance is not None else 'miss'}")
        return instance

    async def get_or_raise(self, session: AsyncSession, key: Any) -> T:
        """Like get(), but a missing row is a NotFoundException carrying type and id."""
        instance = await self.get(session, key)
        if instance is not None:
            return instance
        raise NotFoundException(
            detail=f"{self._name} {key} not found",
            extra={"entity_type": self._name, "entity_id": str(key)},
        )

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Insert ``instance``; server defaults and timestamps are loaded back before returning."""
        session.add(instance)
        await self._flush(session, instance)
        self._lazy.debug(lambda: f"created {self._name}[{getattr(instance, 'id', None)}]")
        return instance

    async def update(self, session: AsyncSession, instance: T) -> T:
        """Flush attribute changes already made on a tracked ``instance``."""
        await self._flush(session, instance)
        self._lazy.debug(lambda: f"updated {self._name}[{getattr(instance, 'id', None)}]")
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        key = getattr(instance, "id", None)
        await session.delete(instance)
        await session.flush()
        self._logger.info("Row deleted", extra={"entity": self._name, "id": str(key)})

    @staticmethod
    async def _flush(session: AsyncSession, instance: Any) -> None:
        await session.flush()
        await session.refresh(instance)


__all__ = ["BaseRepository"]
