"""Tests for the GraphQL schema: queries, mutations, error codes and subscriptions."""

from __future__ import annotations

import asyncio

import pytest

from shopgraph.features.graphql.context import GraphQLContext
from shopgraph.features.graphql.schema import schema
from shopgraph.infra.events import get_event_broker

CREATE_PRODUCT = """
mutation Create($input: CreateProductInput!, $key: String) {
  createProduct(input: $input, idempotencyKey: $key) { id name sku price stock version }
}
"""

UPDATE_PRODUCT = """
mutation Update($input: UpdateProductInput!) {
  updateProduct(input: $input) { id price stock version }
}
"""

DELETE_PRODUCT = """
mutation Delete($input: DeleteInput!) {
  deleteProduct(input: $input) { id sku }
}
"""

PRODUCTS = """
query Products(
  $filter: [FilterInput!], $sort: [SortInput!],
  $first: Int, $after: String, $last: Int, $before: String, $includeTotal: Boolean! = false
) {
  products(
    filter: $filter, sort: $sort, first: $first, after: $after,
    last: $last, before: $before, includeTotal: $includeTotal
  ) {
    edges { cursor node { id sku price } }
    pageInfo { hasPreviousPage hasNextPage startCursor endCursor totalCount }
  }
}
"""

PRODUCT = """
query Product($id: ID!) { product(id: $id) { id name version } }
"""


@pytest.fixture
def execute(session_factory, admin):
    """Run a document in its own session, as one HTTP request would."""

    async def run(document: str, variables: dict | None = None, identity=admin):
        async with session_factory() as session:
            return await schema.execute(
                document,
                variable_values=variables,
                context_value=GraphQLContext(session=session, identity=identity),
            )

    return run


async def create(execute, sku: str, price: str = "1.50", stock: int = 1, **kwargs):
    result = await execute(
        CREATE_PRODUCT,
        {"input": {"name": f"Item {sku}", "sku": sku, "price": price, "stock": stock}, **kwargs},
    )
    assert result.errors is None
    return result.data["createProduct"]


def error_code(result) -> str:
    assert result.errors, "expected errors"
    return result.errors[0].extensions["code"]


# ──────────────────────────────────────────────────────────────
# Mutations
# ──────────────────────────────────────────────────────────────


class TestMutations:
    """Tests for catalog mutations over GraphQL."""

    @pytest.mark.asyncio
    async def test_create_and_read(self, execute):
        """Created products are readable by id with version 1."""
        created = await create(execute, "PEN-1")

        result = await execute(PRODUCT, {"id": created["id"]})

        assert created["price"] == "1.50"
        assert created["version"] == 1
        assert result.data["product"] == {"id": created["id"], "name": "Item PEN-1", "version": 1}

    @pytest.mark.asyncio
    async def test_missing_product_is_null(self, execute):
        result = await execute(PRODUCT, {"id": "missing"})

        assert result.errors is None
        assert result.data["product"] is None

    @pytest.mark.asyncio
    async def test_forbidden_for_viewer(self, execute, viewer):
        """Mutations without the required role fail with FORBIDDEN."""
        result = await execute(
            CREATE_PRODUCT,
            {"input": {"name": "Pen", "sku": "PEN-1", "price": "1.50"}},
            identity=viewer,
        )

        assert error_code(result) == "FORBIDDEN"
        assert result.errors[0].extensions["operation"] == "createProduct"

    @pytest.mark.asyncio
    async def test_validation_error(self, execute):
        result = await execute(CREATE_PRODUCT, {"input": {"name": "Pen", "sku": "PEN-1", "price": "-1"}})

        assert error_code(result) == "VALIDATION_ERROR"
        assert result.errors[0].extensions["errors"][0]["loc"] == ["price"]

    @pytest.mark.asyncio
    async def test_stale_version_conflict(self, execute):
        """expectedVersion mismatches report both versions."""
        created = await create(execute, "PEN-1")
        await execute(UPDATE_PRODUCT, {"input": {"id": created["id"], "stock": 5}})

        result = await execute(
            UPDATE_PRODUCT,
            {"input": {"id": created["id"], "stock": 1, "expectedVersion": 1}},
        )

        assert error_code(result) == "CONFLICT"
        assert result.errors[0].extensions["actual_version"] == 2

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, execute):
        created = await create(execute, "PEN-1")

        result = await execute(
            UPDATE_PRODUCT,
            {"input": {"id": created["id"], "price": "2.25", "expectedVersion": 1}},
        )

        assert result.data["updateProduct"] == {
            "id": created["id"],
            "price": "2.25",
            "stock": 1,
            "version": 2,
        }

    @pytest.mark.asyncio
    async def test_delete_returns_last_state(self, execute):
        created = await create(execute, "PEN-1")

        result = await execute(DELETE_PRODUCT, {"input": {"id": created["id"]}})
        missing = await execute(PRODUCT, {"id": created["id"]})

        assert result.data["deleteProduct"] == {"id": created["id"], "sku": "PEN-1"}
        assert missing.data["product"] is None

    @pytest.mark.asyncio
    async def test_not_found(self, execute):
        result = await execute(DELETE_PRODUCT, {"input": {"id": "missing"}})

        assert error_code(result) == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_idempotency_key_replays(self, execute):
        """A retried request with the same key returns the first result."""
        first = await create(execute, "PEN-1", key="k1")
        second = await create(execute, "PEN-1", key="k1")

        page = await execute(PRODUCTS, {"includeTotal": True})

        assert second["id"] == first["id"]
        assert page.data["products"]["pageInfo"]["totalCount"] == 1

    @pytest.mark.asyncio
    async def test_order_with_customer(self, execute):
        """Orders resolve their customer and expose decimal totals."""
        customer = await execute(
            'mutation { createCustomer(input: {name: "Ada", email: "ada@example.com"}) { id } }'
        )
        customer_id = customer.data["createCustomer"]["id"]

        order = await execute(
            """
            mutation Place($input: CreateOrderInput!) {
              createOrder(input: $input) {
                total status items { productId quantity unitPrice } customer { id name }
              }
            }
            """,
            {
                "input": {
                    "customerId": customer_id,
                    "items": [{"productId": "p1", "quantity": 3, "unitPrice": "0.50"}],
                }
            },
        )

        assert order.errors is None
        assert order.data["createOrder"] == {
            "total": "1.50",
            "status": "pending",
            "items": [{"productId": "p1", "quantity": 3, "unitPrice": "0.50"}],
            "customer": {"id": customer_id, "name": "Ada"},
        }


# ──────────────────────────────────────────────────────────────
# Connections
# ──────────────────────────────────────────────────────────────


class TestConnections:
    """Tests for paginated connection queries."""

    @pytest.fixture
    async def products(self, execute):
        prices = ["3.00", "1.00", "2.00", "1.00", "5.00"]
        return [await create(execute, f"SKU-{i}", price=price, stock=i) for i, price in enumerate(prices)]

    @pytest.mark.asyncio
    async def test_walk_forward(self, execute, products):
        """Following endCursor visits every product once in sort order."""
        seen: list[str] = []
        after = None
        while True:
            result = await execute(
                PRODUCTS,
                {"sort": [{"field": "price", "direction": "DESC"}], "first": 2, "after": after},
            )
            connection = result.data["products"]
            seen.extend(edge["node"]["id"] for edge in connection["edges"])
            if not connection["pageInfo"]["hasNextPage"]:
                break
            after = connection["pageInfo"]["endCursor"]

        expected = sorted(products, key=lambda p: (-float(p["price"]), p["id"]))
        assert seen == [p["id"] for p in expected]

    @pytest.mark.asyncio
    async def test_walk_backward(self, execute, products):
        """last/before pages end where the forward walk starts."""
        forward = await execute(PRODUCTS, {"first": 3})
        end = forward.data["products"]["pageInfo"]["endCursor"]

        backward = await execute(PRODUCTS, {"last": 2, "before": end})
        connection = backward.data["products"]

        forward_ids = [e["node"]["id"] for e in forward.data["products"]["edges"]]
        assert [e["node"]["id"] for e in connection["edges"]] == forward_ids[:2]
        assert connection["pageInfo"]["hasNextPage"] is True
        assert connection["pageInfo"]["hasPreviousPage"] is False

    @pytest.mark.asyncio
    async def test_filter_and_total(self, execute, products):
        result = await execute(
            PRODUCTS,
            {
                "filter": [{"field": "stock", "op": "GTE", "value": 2}],
                "sort": [{"field": "stock"}],
                "includeTotal": True,
            },
        )
        connection = result.data["products"]

        assert [e["node"]["sku"] for e in connection["edges"]] == ["SKU-2", "SKU-3", "SKU-4"]
        assert connection["pageInfo"]["totalCount"] == 3

    @pytest.mark.asyncio
    async def test_camel_case_fields(self, execute, products):
        """Field names are accepted in their GraphQL spelling."""
        result = await execute(PRODUCTS, {"sort": [{"field": "createdAt", "direction": "DESC"}], "first": 1})

        assert result.errors is None
        assert len(result.data["products"]["edges"]) == 1

    @pytest.mark.asyncio
    async def test_first_zero(self, execute, products):
        result = await execute(PRODUCTS, {"first": 0})
        connection = result.data["products"]

        assert connection["edges"] == []
        assert connection["pageInfo"]["hasNextPage"] is True

    @pytest.mark.asyncio
    async def test_tampered_cursor(self, execute, products):
        """Modified cursors fail with INVALID_CURSOR."""
        page = await execute(PRODUCTS, {"first": 2})
        cursor = page.data["products"]["pageInfo"]["endCursor"]
        tampered = cursor[:-2] + ("AA" if cursor[-2:] != "AA" else "BB")

        result = await execute(PRODUCTS, {"first": 2, "after": tampered})

        assert error_code(result) == "INVALID_CURSOR"

    @pytest.mark.asyncio
    async def test_cursor_from_other_filter(self, execute, products):
        page = await execute(PRODUCTS, {"first": 2})
        cursor = page.data["products"]["pageInfo"]["endCursor"]

        result = await execute(
            PRODUCTS,
            {"first": 2, "after": cursor, "filter": [{"field": "stock", "op": "GT", "value": 0}]},
        )

        assert error_code(result) == "INVALID_CURSOR"
        assert result.errors[0].extensions["reason"] == "scope_mismatch"

    @pytest.mark.asyncio
    async def test_page_size_too_large(self, execute, products):
        result = await execute(PRODUCTS, {"first": 1000})

        assert error_code(result) == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_first_and_last_rejected(self, execute, products):
        result = await execute(PRODUCTS, {"first": 1, "last": 1})

        assert error_code(result) == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_unknown_sort_field(self, execute, products):
        result = await execute(PRODUCTS, {"sort": [{"field": "colour"}]})

        assert error_code(result) == "INVALID_ARGUMENT"


# ──────────────────────────────────────────────────────────────
# Subscriptions
# ──────────────────────────────────────────────────────────────


class TestSubscriptions:
    """Tests for the entityEvents subscription."""

    @pytest.mark.asyncio
    async def test_receives_committed_create(self, execute):
        """Subscribers get the created node after the mutation commits."""
        stream = await schema.subscribe(
            """
            subscription {
              entityEvents(entityTypes: [PRODUCT], eventTypes: [CREATED]) {
                eventType entityType entityId
                node { ... on ProductType { sku } }
              }
            }
            """
        )
        receive = asyncio.create_task(anext(stream))
        async with asyncio.timeout(1):
            while get_event_broker().subscriber_count == 0:
                await asyncio.sleep(0.01)

        created = await create(execute, "PEN-1")
        async with asyncio.timeout(1):
            result = await receive
        await stream.aclose()

        assert result.errors is None
        assert result.data["entityEvents"] == {
            "eventType": "CREATED",
            "entityType": "PRODUCT",
            "entityId": created["id"],
            "node": {"sku": "PEN-1"},
        }
