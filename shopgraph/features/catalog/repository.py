"""Repositories for catalog entities and mutation receipts.

Writes to one entity are serialized through a process-wide keyed lock and
guarded by the row ``version``. Reads never take the lock.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from shopgraph.core.database import BaseRepository, KeyedLock
from shopgraph.core.exceptions import ConflictError
from shopgraph.core.pagination.values import dump_value, load_value
from shopgraph.core.schemas.entity import Entity, EntityType
from shopgraph.features.catalog.models import MODELS, CatalogModel, MutationReceipt

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

_write_locks = KeyedLock()

M = TypeVar("M", bound=CatalogModel)


class CatalogRepository(BaseRepository[M]):
    """Repository for one catalog model with versioned writes."""

    def write_lock(self, entity_id: str) -> AbstractAsyncContextManager[None]:
        """Serialize writers of ``entity_id``."""
        return _write_locks.hold((self.model.__name__, entity_id))

    async def get_for_write(
        self,
        session: AsyncSession,
        entity_id: str,
        expected_version: int | None = None,
    ) -> M:
        """Load an entity about to be written and check its version.

        Raises:
            NotFoundException: If the entity does not exist.
            ConflictError: If ``expected_version`` is stale.
        """
        instance = await self.get_or_raise(session, entity_id)
        if expected_version is not None and instance.version != expected_version:
            self._logger.info(
                "Version conflict",
                extra={
                    "entity": self.model.__name__,
                    "id": entity_id,
                    "expected_version": expected_version,
                    "actual_version": instance.version,
                    "operation": "db.get_for_write",
                },
            )
            raise ConflictError(
                detail=f"{self.model.__name__} {entity_id} was modified concurrently",
                extra={
                    "entity_id": entity_id,
                    "expected_version": expected_version,
                    "actual_version": instance.version,
                },
            )
        return instance

    async def apply_changes(self, session: AsyncSession, instance: M, changes: dict[str, Any]) -> M:
        """Write ``changes`` onto ``instance`` and bump its version."""
        for key, value in changes.items():
            setattr(instance, key, value)
        instance.version += 1
        return await self.update(session, instance)


class ReceiptRepository(BaseRepository[MutationReceipt]):
    """Stores the outcome of mutations that carried an idempotency key."""

    def __init__(self) -> None:
        super().__init__(MutationReceipt)

    def key_lock(self, subject: str, idempotency_key: str) -> AbstractAsyncContextManager[None]:
        """Serialize requests of one subject sharing one idempotency key."""
        return _write_locks.hold(("receipt", subject, idempotency_key))

    async def find(self, session: AsyncSession, subject: str, idempotency_key: str) -> MutationReceipt | None:
        """Receipt of ``subject`` for ``idempotency_key``; other subjects' receipts are invisible."""
        return await self.get(session, (subject, idempotency_key))

    async def record(
        self,
        session: AsyncSession,
        *,
        idempotency_key: str,
        operation: str,
        subject: str,
        input_hash: str,
        entity: Entity,
    ) -> MutationReceipt:
        receipt = MutationReceipt(
            idempotency_key=idempotency_key,
            operation=operation,
            subject=subject,
            input_hash=input_hash,
            entity_type=str(entity.type),
            entity_id=entity.id,
            result={"fields": dump_value(entity.fields)},
            created_at=datetime.now(UTC),
        )
        return await self.create(session, receipt)

    @staticmethod
    def replay(receipt: MutationReceipt) -> Entity:
        """Rebuild the entity stored in a receipt."""
        return Entity(
            type=EntityType(receipt.entity_type),
            id=receipt.entity_id,
            fields=load_value(receipt.result["fields"]),
        )


_repositories: dict[EntityType, CatalogRepository[Any]] = {}
_receipts: ReceiptRepository | None = None


def get_catalog_repository(entity_type: EntityType) -> CatalogRepository[Any]:
    """Get the shared repository for ``entity_type``."""
    repository = _repositories.get(entity_type)
    if repository is None:
        repository = _repositories[entity_type] = CatalogRepository(MODELS[entity_type])
    return repository


def get_receipt_repository() -> ReceiptRepository:
    """Get the shared receipt repository."""
    global _receipts
    if _receipts is None:
        _receipts = ReceiptRepository()
    return _receipts


__all__ = [
    "CatalogRepository",
    "ReceiptRepository",
    "get_catalog_repository",
    "get_receipt_repository",
]
