"""Pydantic input schemas for catalog mutations."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

OrderStatus = Literal["pending", "paid", "shipped", "cancelled"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CatalogInput(BaseModel):
    """Common configuration for mutation inputs."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class TargetInput(CatalogInput):
    """Identifies an existing entity, optionally at a known version."""

    id: str = Field(..., min_length=1, max_length=36)
    expected_version: int | None = Field(
        default=None,
        ge=1,
        description="Reject the write unless the stored version still matches",
    )


class ProductCreate(CatalogInput):
    """Payload used when creating a product."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    sku: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(default=0, ge=0)


class ProductUpdate(TargetInput):
    """Payload for updating a product. Unset fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    sku: str | None = Field(default=None, min_length=1, max_length=100)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    stock: int | None = Field(default=None, ge=0)


class CustomerCreate(CatalogInput):
    """Payload used when creating a customer."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=320, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, max_length=50)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class CustomerUpdate(TargetInput):
    """Payload for updating a customer."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=320, pattern=EMAIL_PATTERN)
    phone: str | None = Field(default=None, max_length=50)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else None


class OrderItemInput(CatalogInput):
    """One order line."""

    product_id: str = Field(..., min_length=1, max_length=36)
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class OrderCreate(CatalogInput):
    """Payload used when placing an order. The total is derived from the items."""

    customer_id: str = Field(..., min_length=1, max_length=36)
    status: OrderStatus = "pending"
    items: list[OrderItemInput] = Field(..., min_length=1)


class OrderUpdate(TargetInput):
    """Payload for updating an order."""

    status: OrderStatus | None = None
    items: list[OrderItemInput] | None = Field(default=None, min_length=1)


class EntityDelete(TargetInput):
    """Payload for deleting any catalog entity."""


def order_total(items: list[OrderItemInput]) -> Decimal:
    """Sum of line subtotals, rounded to cents."""
    return sum((item.subtotal for item in items), Decimal("0")).quantize(Decimal("0.01"))


__all__ = [
    "CatalogInput",
    "CustomerCreate",
    "CustomerUpdate",
    "EntityDelete",
    "OrderCreate",
    "OrderItemInput",
    "OrderStatus",
    "OrderUpdate",
    "ProductCreate",
    "ProductUpdate",
    "TargetInput",
    "order_total",
]
