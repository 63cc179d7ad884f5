"""Mutation resolvers for the GraphQL API.

Every mutation accepts an optional ``idempotencyKey``: repeating a request
with the same key returns the original result instead of writing again.
Failures surface as GraphQL errors whose ``extensions.code`` names the
error class (FORBIDDEN, CONFLICT, VALIDATION_ERROR, NOT_FOUND, ...).
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

import strawberry
from strawberry.types import Info

from shopgraph.core.schemas.entity import Entity
from shopgraph.features.graphql.context import GraphQLContext
from shopgraph.features.graphql.types.catalog import (
    CreateCustomerInput,
    CreateOrderInput,
    CreateProductInput,
    CustomerType,
    DeleteInput,
    OrderType,
    ProductType,
    UpdateCustomerInput,
    UpdateOrderInput,
    UpdateProductInput,
    input_to_dict,
)

logger = logging.getLogger(__name__)

IdempotencyKeyArg = Annotated[
    str | None,
    strawberry.argument(description="Repeat-safe key; a retried request replays the first result"),
]


async def _mutate(
    info: Info[GraphQLContext, None],
    name: str,
    input: Any,  # noqa: A002
    idempotency_key: str | None,
) -> Entity:
    ctx = info.context
    return await ctx.catalog.mutate(
        name,
        input_to_dict(input),
        ctx.identity,
        idempotency_key=idempotency_key,
    )


@strawberry.type(description="Root mutation type")
class Mutation:
    """GraphQL Mutation resolvers."""

    @strawberry.mutation(description="Create a product")
    async def create_product(
        self,
        info: Info[GraphQLContext, None],
        input: CreateProductInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> ProductType:
        entity = await _mutate(info, "createProduct", input, idempotency_key)
        return ProductType.from_entity(entity)

    @strawberry.mutation(description="Update a product")
    async def update_product(
        self,
        info: Info[GraphQLContext, None],
        input: UpdateProductInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> ProductType:
        entity = await _mutate(info, "updateProduct", input, idempotency_key)
        return ProductType.from_entity(entity)

    @strawberry.mutation(description="Delete a product and return its last state")
    async def delete_product(
        self,
        info: Info[GraphQLContext, None],
        input: DeleteInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> ProductType:
        entity = await _mutate(info, "deleteProduct", input, idempotency_key)
        return ProductType.from_entity(entity)

    @strawberry.mutation(description="Create a customer")
    async def create_customer(
        self,
        info: Info[GraphQLContext, None],
        input: CreateCustomerInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> CustomerType:
        entity = await _mutate(info, "createCustomer", input, idempotency_key)
        return CustomerType.from_entity(entity)

    @strawberry.mutation(description="Update a customer")
    async def update_customer(
        self,
        info: Info[GraphQLContext, None],
        input: UpdateCustomerInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> CustomerType:
        entity = await _mutate(info, "updateCustomer", input, idempotency_key)
        return CustomerType.from_entity(entity)

    @strawberry.mutation(description="Delete a customer and return its last state")
    async def delete_customer(
        self,
        info: Info[GraphQLContext, None],
        input: DeleteInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> CustomerType:
        entity = await _mutate(info, "deleteCustomer", input, idempotency_key)
        return CustomerType.from_entity(entity)

    @strawberry.mutation(description="Place an order")
    async def create_order(
        self,
        info: Info[GraphQLContext, None],
        input: CreateOrderInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> OrderType:
        entity = await _mutate(info, "createOrder", input, idempotency_key)
        return OrderType.from_entity(entity)

    @strawberry.mutation(description="Update an order")
    async def update_order(
        self,
        info: Info[GraphQLContext, None],
        input: UpdateOrderInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> OrderType:
        entity = await _mutate(info, "updateOrder", input, idempotency_key)
        return OrderType.from_entity(entity)

    @strawberry.mutation(description="Delete an order and return its last state")
    async def delete_order(
        self,
        info: Info[GraphQLContext, None],
        input: DeleteInput,  # noqa: A002
        idempotency_key: IdempotencyKeyArg = None,
    ) -> OrderType:
        entity = await _mutate(info, "deleteOrder", input, idempotency_key)
        return OrderType.from_entity(entity)


__all__ = ["Mutation"]
