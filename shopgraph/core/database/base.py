"""Declarative base and the column mixins every catalog table shares.

    class Product(Base, UUIDStrPKMixin, TimestampMixin, VersionMixin):
        __tablename__ = "products"
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDStrPKMixin:
    """String UUID4 ``id``; the same value is the GraphQL ID and the client cache key."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))


class TimestampMixin:
    """``created_at``/``updated_at`` in UTC.

    ``created_at`` doubles as a sort key for connections, so it is never null.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )


class VersionMixin:
    """Row version, starting at 1 and bumped by CatalogRepository.apply_changes().

    Writers pass the version they last read as ``expectedVersion``.
    """

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)


__all__ = ["NAMING_CONVENTION", "Base", "TimestampMixin", "UUIDStrPKMixin", "VersionMixin"]
