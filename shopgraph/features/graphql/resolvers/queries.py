"""Query resolvers for the GraphQL API.

Provides read operations for the catalog:
- product(id), customer(id), order(id): Get a single entity by ID
- products, customers, orders: Filtered, sorted connections with cursor pagination
"""

from __future__ import annotations

import logging
from typing import Annotated

import strawberry
from strawberry.types import Info

from shopgraph.core.schemas.entity import EntityType
from shopgraph.features.graphql.context import GraphQLContext
from shopgraph.features.graphql.types.base import FilterInput, SortInput, conditions_from, sort_from
from shopgraph.features.graphql.types.catalog import (
    CustomerConnection,
    CustomerType,
    OrderConnection,
    OrderType,
    ProductConnection,
    ProductType,
)

logger = logging.getLogger(__name__)

# Type aliases for annotated arguments with descriptions
FilterArg = Annotated[
    list[FilterInput] | None,
    strawberry.argument(description="Conditions that must all match"),
]
SortArg = Annotated[
    list[SortInput] | None,
    strawberry.argument(description="Sort keys; id is appended as the tie-break"),
]
FirstArg = Annotated[
    int | None, strawberry.argument(description="Number of items to return (forward pagination)"),
]
AfterArg = Annotated[
    str | None, strawberry.argument(description="Cursor to start after (forward pagination)"),
]
LastArg = Annotated[
    int | None, strawberry.argument(description="Number of items to return (backward pagination)"),
]
BeforeArg = Annotated[
    str | None, strawberry.argument(description="Cursor to start before (backward pagination)"),
]
IncludeTotalArg = Annotated[
    bool, strawberry.argument(description="Also count all matching items"),
]


async def _connection(
    info: Info[GraphQLContext, None],
    entity_type: EntityType,
    *,
    filter: list[FilterInput] | None,  # noqa: A002
    sort: list[SortInput] | None,
    first: int | None,
    after: str | None,
    last: int | None,
    before: str | None,
    include_total: bool,
):
    return await info.context.catalog.connection(
        entity_type,
        conditions=conditions_from(filter),
        sort=sort_from(sort),
        first=first,
        after=after,
        last=last,
        before=before,
        include_total=include_total,
    )


@strawberry.type(description="Root query type")
class Query:
    """GraphQL Query resolvers."""

    @strawberry.field(description="Get a single product by ID")
    async def product(self, info: Info[GraphQLContext, None], id: strawberry.ID) -> ProductType | None:
        entity = await info.context.catalog.get(EntityType.PRODUCT, str(id))
        return ProductType.from_entity(entity) if entity is not None else None

    @strawberry.field(description="Get a single customer by ID")
    async def customer(self, info: Info[GraphQLContext, None], id: strawberry.ID) -> CustomerType | None:
        entity = await info.context.catalog.get(EntityType.CUSTOMER, str(id))
        return CustomerType.from_entity(entity) if entity is not None else None

    @strawberry.field(description="Get a single order by ID")
    async def order(self, info: Info[GraphQLContext, None], id: strawberry.ID) -> OrderType | None:
        entity = await info.context.catalog.get(EntityType.ORDER, str(id))
        return OrderType.from_entity(entity) if entity is not None else None

    @strawberry.field(description="List products with cursor pagination")
    async def products(
        self,
        info: Info[GraphQLContext, None],
        filter: FilterArg = None,  # noqa: A002
        sort: SortArg = None,
        first: FirstArg = None,
        after: AfterArg = None,
        last: LastArg = None,
        before: BeforeArg = None,
        include_total: IncludeTotalArg = False,
    ) -> ProductConnection:
        """List products with Relay-style cursor pagination.

        Cursors are only valid for the filter and sort that produced them.
        """
        connection = await _connection(
            info,
            EntityType.PRODUCT,
            filter=filter,
            sort=sort,
            first=first,
            after=after,
            last=last,
            before=before,
            include_total=include_total,
        )
        return ProductConnection.from_connection(connection)

    @strawberry.field(description="List customers with cursor pagination")
    async def customers(
        self,
        info: Info[GraphQLContext, None],
        filter: FilterArg = None,  # noqa: A002
        sort: SortArg = None,
        first: FirstArg = None,
        after: AfterArg = None,
        last: LastArg = None,
        before: BeforeArg = None,
        include_total: IncludeTotalArg = False,
    ) -> CustomerConnection:
        connection = await _connection(
            info,
            EntityType.CUSTOMER,
            filter=filter,
            sort=sort,
            first=first,
            after=after,
            last=last,
            before=before,
            include_total=include_total,
        )
        return CustomerConnection.from_connection(connection)

    @strawberry.field(description="List orders with cursor pagination")
    async def orders(
        self,
        info: Info[GraphQLContext, None],
        filter: FilterArg = None,  # noqa: A002
        sort: SortArg = None,
        first: FirstArg = None,
        after: AfterArg = None,
        last: LastArg = None,
        before: BeforeArg = None,
        include_total: IncludeTotalArg = False,
    ) -> OrderConnection:
        connection = await _connection(
            info,
            EntityType.ORDER,
            filter=filter,
            sort=sort,
            first=first,
            after=after,
            last=last,
            before=before,
            include_total=include_total,
        )
        return OrderConnection.from_connection(connection)


__all__ = ["Query"]
