"""GraphQL types for the catalog: products, customers and orders.

Provides:
- Node types built from normalized entities (ProductType, CustomerType, OrderType)
- Input types for create/update/delete mutations
- Connection types (Relay pattern)
- Event types for the entityEvents subscription
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

import strawberry
from strawberry.types import Info

from shopgraph.core.pagination import Connection
from shopgraph.core.schemas.entity import Entity, EntityType
from shopgraph.features.graphql.context import GraphQLContext
from shopgraph.features.graphql.types.base import PageInfoType
from shopgraph.infra.events import EntityEvent

# --- Node Types ---


@strawberry.type(description="Product offered in the catalog")
class ProductType:
    id: strawberry.ID = strawberry.field(description="Unique identifier (UUID)")
    name: str = strawberry.field(description="Product name")
    description: str | None = strawberry.field(description="Detailed product description")
    sku: str = strawberry.field(description="Stock Keeping Unit (unique product code)")
    price: Decimal = strawberry.field(description="Product price")
    stock: int = strawberry.field(description="Current stock quantity")
    version: int = strawberry.field(description="Row version, send as expectedVersion")
    created_at: datetime = strawberry.field(description="When the product was created")
    updated_at: datetime = strawberry.field(description="When the product was last updated")

    @classmethod
    def from_entity(cls, entity: Entity) -> ProductType:
        f = entity.fields
        return cls(
            id=strawberry.ID(entity.id),
            name=f["name"],
            description=f.get("description"),
            sku=f["sku"],
            price=f["price"],
            stock=f["stock"],
            version=f["version"],
            created_at=f["created_at"],
            updated_at=f["updated_at"],
        )


@strawberry.type(description="Customer who places orders")
class CustomerType:
    id: strawberry.ID = strawberry.field(description="Unique identifier (UUID)")
    name: str = strawberry.field(description="Customer display name")
    email: str = strawberry.field(description="Contact email")
    phone: str | None = strawberry.field(description="Contact phone number")
    version: int = strawberry.field(description="Row version, send as expectedVersion")
    created_at: datetime = strawberry.field(description="When the customer was created")
    updated_at: datetime = strawberry.field(description="When the customer was last updated")

    @classmethod
    def from_entity(cls, entity: Entity) -> CustomerType:
        f = entity.fields
        return cls(
            id=strawberry.ID(entity.id),
            name=f["name"],
            email=f["email"],
            phone=f.get("phone"),
            version=f["version"],
            created_at=f["created_at"],
            updated_at=f["updated_at"],
        )

    @strawberry.field(description="Orders placed by this customer, newest first")
    async def orders(
        self,
        info: Info[GraphQLContext, None],
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
    ) -> OrderConnection:
        connection = await info.context.catalog.connection(
            EntityType.ORDER,
            conditions=[{"field": "customer_id", "op": "eq", "value": str(self.id)}],
            sort=[("created_at", "desc")],
            first=first,
            after=after,
            last=last,
            before=before,
        )
        return OrderConnection.from_connection(connection)


@strawberry.type(description="One order line")
class OrderItemType:
    product_id: strawberry.ID = strawberry.field(description="Ordered product")
    quantity: int = strawberry.field(description="Ordered quantity")
    unit_price: Decimal = strawberry.field(description="Price per unit at order time")

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> OrderItemType:
        return cls(
            product_id=strawberry.ID(item["product_id"]),
            quantity=item["quantity"],
            unit_price=Decimal(str(item["unit_price"])),
        )


@strawberry.type(description="Order placed by a customer")
class OrderType:
    id: strawberry.ID = strawberry.field(description="Unique identifier (UUID)")
    customer_id: strawberry.ID = strawberry.field(description="Customer who placed the order")
    status: str = strawberry.field(description="pending | paid | shipped | cancelled")
    items: list[OrderItemType] = strawberry.field(description="Order lines")
    total: Decimal = strawberry.field(description="Order total")
    version: int = strawberry.field(description="Row version, send as expectedVersion")
    created_at: datetime = strawberry.field(description="When the order was placed")
    updated_at: datetime = strawberry.field(description="When the order was last updated")

    @classmethod
    def from_entity(cls, entity: Entity) -> OrderType:
        f = entity.fields
        return cls(
            id=strawberry.ID(entity.id),
            customer_id=strawberry.ID(f["customer_id"]),
            status=f["status"],
            items=[OrderItemType.from_dict(item) for item in f.get("items") or ()],
            total=f["total"],
            version=f["version"],
            created_at=f["created_at"],
            updated_at=f["updated_at"],
        )

    @strawberry.field(description="Customer who placed the order")
    async def customer(self, info: Info[GraphQLContext, None]) -> CustomerType | None:
        entity = await info.context.catalog.get(EntityType.CUSTOMER, str(self.customer_id))
        return CustomerType.from_entity(entity) if entity is not None else None


CatalogNode = Annotated[
    ProductType | CustomerType | OrderType,
    strawberry.union(name="CatalogNode", description="Any catalog entity"),
]

_NODE_TYPES: dict[EntityType, Any] = {
    EntityType.PRODUCT: ProductType,
    EntityType.CUSTOMER: CustomerType,
    EntityType.ORDER: OrderType,
}


def node_from_entity(entity: Entity) -> ProductType | CustomerType | OrderType:
    """Convert a normalized entity to its GraphQL node type."""
    return _NODE_TYPES[entity.type].from_entity(entity)


# --- Connection Types (Relay Pattern) ---


@strawberry.type(description="Edge containing a product and its cursor")
class ProductEdge:
    node: ProductType = strawberry.field(description="The product")
    cursor: str = strawberry.field(description="Cursor for this item")


@strawberry.type(description="Paginated connection of products")
class ProductConnection:
    edges: list[ProductEdge] = strawberry.field(description="List of edges (items with cursors)")
    page_info: PageInfoType = strawberry.field(description="Pagination metadata")

    @classmethod
    def from_connection(cls, connection: Connection[Entity]) -> ProductConnection:
        return cls(
            edges=[
                ProductEdge(node=ProductType.from_entity(e.node), cursor=e.cursor)
                for e in connection.edges
            ],
            page_info=PageInfoType.from_page_info(connection.page_info),
        )


@strawberry.type(description="Edge containing a customer and its cursor")
class CustomerEdge:
    node: CustomerType = strawberry.field(description="The customer")
    cursor: str = strawberry.field(description="Cursor for this item")


@strawberry.type(description="Paginated connection of customers")
class CustomerConnection:
    edges: list[CustomerEdge] = strawberry.field(description="List of edges (items with cursors)")
    page_info: PageInfoType = strawberry.field(description="Pagination metadata")

    @classmethod
    def from_connection(cls, connection: Connection[Entity]) -> CustomerConnection:
        return cls(
            edges=[
                CustomerEdge(node=CustomerType.from_entity(e.node), cursor=e.cursor)
                for e in connection.edges
            ],
            page_info=PageInfoType.from_page_info(connection.page_info),
        )


@strawberry.type(description="Edge containing an order and its cursor")
class OrderEdge:
    node: OrderType = strawberry.field(description="The order")
    cursor: str = strawberry.field(description="Cursor for this item")


@strawberry.type(description="Paginated connection of orders")
class OrderConnection:
    edges: list[OrderEdge] = strawberry.field(description="List of edges (items with cursors)")
    page_info: PageInfoType = strawberry.field(description="Pagination metadata")

    @classmethod
    def from_connection(cls, connection: Connection[Entity]) -> OrderConnection:
        return cls(
            edges=[
                OrderEdge(node=OrderType.from_entity(e.node), cursor=e.cursor)
                for e in connection.edges
            ],
            page_info=PageInfoType.from_page_info(connection.page_info),
        )


# --- Input Types ---


@strawberry.input(description="Input for creating a product")
class CreateProductInput:
    name: str
    sku: str
    price: Decimal
    description: str | None = None
    stock: int = 0


@strawberry.input(description="Input for updating a product. Omitted fields are unchanged.")
class UpdateProductInput:
    id: strawberry.ID
    expected_version: int | None = strawberry.field(
        default=None,
        description="Fail with CONFLICT unless the stored version matches",
    )
    name: str | None = strawberry.UNSET
    description: str | None = strawberry.UNSET
    sku: str | None = strawberry.UNSET
    price: Decimal | None = strawberry.UNSET
    stock: int | None = strawberry.UNSET


@strawberry.input(description="Input for creating a customer")
class CreateCustomerInput:
    name: str
    email: str
    phone: str | None = None


@strawberry.input(description="Input for updating a customer. Omitted fields are unchanged.")
class UpdateCustomerInput:
    id: strawberry.ID
    expected_version: int | None = None
    name: str | None = strawberry.UNSET
    email: str | None = strawberry.UNSET
    phone: str | None = strawberry.UNSET


@strawberry.input(description="One order line")
class OrderItemInput:
    product_id: strawberry.ID
    quantity: int
    unit_price: Decimal


@strawberry.input(description="Input for placing an order")
class CreateOrderInput:
    customer_id: strawberry.ID
    items: list[OrderItemInput]
    status: str = "pending"


@strawberry.input(description="Input for updating an order. Omitted fields are unchanged.")
class UpdateOrderInput:
    id: strawberry.ID
    expected_version: int | None = None
    status: str | None = strawberry.UNSET
    items: list[OrderItemInput] | None = strawberry.UNSET


@strawberry.input(description="Input for deleting a catalog entity")
class DeleteInput:
    id: strawberry.ID
    expected_version: int | None = None


def input_to_dict(value: Any) -> Any:
    """Convert a Strawberry input object to plain data, dropping unset fields."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: input_to_dict(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if getattr(value, f.name) is not strawberry.UNSET
        }
    if isinstance(value, list):
        return [input_to_dict(v) for v in value]
    return value


# --- Event Types (for Subscriptions) ---


@strawberry.enum(description="Kind of catalog entity")
class EntityKind(Enum):
    PRODUCT = "Product"
    CUSTOMER = "Customer"
    ORDER = "Order"


@strawberry.enum(description="Types of entity events")
class EntityEventKind(Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@strawberry.type(name="EntityEvent", description="Committed change to a catalog entity")
class EntityEventPayload:
    event_id: strawberry.ID = strawberry.field(description="Unique event id")
    event_type: EntityEventKind = strawberry.field(description="Type of event")
    entity_type: EntityKind = strawberry.field(description="Type of the affected entity")
    entity_id: strawberry.ID = strawberry.field(description="ID of the affected entity")
    node: CatalogNode = strawberry.field(
        description="Entity after the change (last known state for DELETED)"
    )

    @classmethod
    def from_event(cls, event: EntityEvent) -> EntityEventPayload:
        return cls(
            event_id=strawberry.ID(event.event_id),
            event_type=EntityEventKind(str(event.event_type)),
            entity_type=EntityKind(str(event.entity.type)),
            entity_id=strawberry.ID(event.entity.id),
            node=node_from_entity(event.entity),
        )


__all__ = [
    "CatalogNode",
    "CreateCustomerInput",
    "CreateOrderInput",
    "CreateProductInput",
    "CustomerConnection",
    "CustomerEdge",
    "CustomerType",
    "DeleteInput",
    "EntityEventKind",
    "EntityEventPayload",
    "EntityKind",
    "OrderConnection",
    "OrderEdge",
    "OrderItemInput",
    "OrderItemType",
    "OrderType",
    "ProductConnection",
    "ProductEdge",
    "ProductType",
    "UpdateCustomerInput",
    "UpdateOrderInput",
    "UpdateProductInput",
    "input_to_dict",
    "node_from_entity",
]
