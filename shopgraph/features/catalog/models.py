"""Catalog domain models: products, customers and orders."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shopgraph.core.database import Base, TimestampMixin, UUIDStrPKMixin, VersionMixin
from shopgraph.core.schemas.entity import Entity, EntityType


class CatalogModel(Base, UUIDStrPKMixin, TimestampMixin, VersionMixin):
    """Shared behaviour of catalog tables."""

    __abstract__ = True

    entity_type: ClassVar[EntityType]

    def to_entity(self) -> Entity:
        """Snapshot this row as a normalized entity."""
        fields: dict[str, Any] = {
            column.key: getattr(self, column.key)
            for column in self.__mapper__.column_attrs
            if column.key != "id"
        }
        return Entity(type=self.entity_type, id=self.id, fields=fields)


class Product(CatalogModel):
    """Product offered in the catalog."""

    __tablename__ = "products"
    entity_type = EntityType.PRODUCT

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Product name",
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Detailed product description",
    )
    sku: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        comment="Stock Keeping Unit (unique product code)",
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Product price (2 decimal places)",
    )
    stock: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Current stock quantity",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name}, price={self.price})>"


class Customer(CatalogModel):
    """Customer who places orders."""

    __tablename__ = "customers"
    entity_type = EntityType.CUSTOMER

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Customer display name",
    )
    email: Mapped[str] = mapped_column(
        String(320),
        unique=True,
        nullable=False,
        comment="Contact email (unique)",
    )
    phone: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Contact phone number",
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, email={self.email})>"


class Order(CatalogModel):
    """Order placed by a customer."""

    __tablename__ = "orders"
    entity_type = EntityType.ORDER

    customer_id: Mapped[str] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Customer who placed the order",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default="pending",
        nullable=False,
        index=True,
        comment="pending | paid | shipped | cancelled",
    )
    items: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
        comment="Line items: [{productId, quantity, unitPrice}]",
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0"),
        nullable=False,
        comment="Order total (2 decimal places)",
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, customer_id={self.customer_id}, status={self.status})>"


class MutationReceipt(Base):
    """Outcome of a completed mutation, keyed by caller and idempotency key.

    A repeated request from the same subject with the same key replays
    ``result`` instead of writing again. Keys of different subjects never
    collide.
    """

    __tablename__ = "mutation_receipts"

    subject: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Identity that ran the mutation",
    )
    idempotency_key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment="Client-supplied idempotency key",
    )
    operation: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Mutation name, e.g. createProduct",
    )
    input_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 of the canonical mutation input",
    )
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    result: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Tagged JSON snapshot of the resulting entity",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the mutation completed",
    )


MODELS: dict[EntityType, type[CatalogModel]] = {
    EntityType.PRODUCT: Product,
    EntityType.CUSTOMER: Customer,
    EntityType.ORDER: Order,
}

__all__ = ["MODELS", "CatalogModel", "Customer", "MutationReceipt", "Order", "Product"]
