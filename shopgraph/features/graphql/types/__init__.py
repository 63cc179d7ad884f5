"""Strawberry GraphQL types."""

from shopgraph.features.graphql.types.base import (
    FilterInput,
    FilterOperator,
    PageInfoType,
    SortDirection,
    SortInput,
)
from shopgraph.features.graphql.types.catalog import (
    CustomerConnection,
    CustomerType,
    EntityEventPayload,
    OrderConnection,
    OrderType,
    ProductConnection,
    ProductType,
    node_from_entity,
)

__all__ = [
    "CustomerConnection",
    "CustomerType",
    "EntityEventPayload",
    "FilterInput",
    "FilterOperator",
    "OrderConnection",
    "OrderType",
    "PageInfoType",
    "ProductConnection",
    "ProductType",
    "SortDirection",
    "SortInput",
    "node_from_entity",
]
