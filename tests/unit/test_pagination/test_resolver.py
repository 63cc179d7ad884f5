"""Unit tests for the Relay connection resolver over an in-memory source."""

from __future__ import annotations

from decimal import Decimal

import pytest

from shopgraph.core.exceptions import InvalidArgumentError, InvalidCursorError
from shopgraph.core.pagination import (
    ConnectionResolver,
    ConnectionScope,
    CursorCodec,
    FilterCondition,
    FilterExpr,
    InMemorySource,
    SortSpec,
)
from shopgraph.core.schemas.entity import Entity, EntityType


def product(id: str, price: str = "1.00", stock: int = 0) -> Entity:  # noqa: A002
    return Entity(
        type=EntityType.PRODUCT,
        id=id,
        fields={"price": Decimal(price), "stock": stock},
    )


@pytest.fixture
def codec() -> CursorCodec:
    return CursorCodec("resolver-secret")


@pytest.fixture
def five() -> InMemorySource:
    """Products with ids 1..5."""
    return InMemorySource(product(str(i)) for i in range(1, 6))


@pytest.fixture
def resolver(five, codec) -> ConnectionResolver:
    return ConnectionResolver(five, codec, default_page_size=2, max_page_size=10)


@pytest.fixture
def scope() -> ConnectionScope:
    return ConnectionScope(entity_type=EntityType.PRODUCT)


def ids(connection) -> list[str]:
    return [node.id for node in connection.nodes]


# ──────────────────────────────────────────────────────────────
# Forward pagination
# ──────────────────────────────────────────────────────────────


class TestForwardPagination:
    """Tests for first/after."""

    @pytest.mark.asyncio
    async def test_pages_of_two_over_five(self, resolver, scope):
        """first=2 walks 1..5 in three pages with correct flags."""
        page1 = await resolver.resolve(scope, first=2)
        assert ids(page1) == ["1", "2"]
        assert page1.page_info.has_next_page is True
        assert page1.page_info.has_previous_page is False

        page2 = await resolver.resolve(scope, first=2, after=page1.page_info.end_cursor)
        assert ids(page2) == ["3", "4"]
        assert page2.page_info.has_next_page is True
        assert page2.page_info.has_previous_page is True

        page3 = await resolver.resolve(scope, first=2, after=page2.page_info.end_cursor)
        assert ids(page3) == ["5"]
        assert page3.page_info.has_next_page is False
        assert page3.page_info.has_previous_page is True

    @pytest.mark.asyncio
    async def test_concatenated_pages_equal_full_order(self, codec):
        """Walking every page yields the full sorted result exactly once."""
        prices = ["3.00", "1.00", "2.00", "1.00", "3.00", "2.00", "1.00"]
        source = InMemorySource(product(f"p{i}", price) for i, price in enumerate(prices))
        scope = ConnectionScope(
            entity_type=EntityType.PRODUCT,
            sort=SortSpec.build([("price", "desc")]),
        )
        resolver = ConnectionResolver(source, codec, default_page_size=3)

        seen: list[str] = []
        after = None
        while True:
            page = await resolver.resolve(scope, first=3, after=after)
            seen.extend(ids(page))
            if not page.page_info.has_next_page:
                break
            after = page.page_info.end_cursor

        assert seen == [e.id for e in scope.sort.sorted(source.entities)]
        assert len(seen) == len(set(seen)) == len(prices)

    @pytest.mark.asyncio
    async def test_exactly_n_remaining(self, resolver, scope):
        """When the page size equals the remaining count there is no next page."""
        page = await resolver.resolve(scope, first=5)

        assert ids(page) == ["1", "2", "3", "4", "5"]
        assert page.page_info.has_next_page is False

    @pytest.mark.asyncio
    async def test_after_last_item_is_empty(self, resolver, scope, codec, five):
        """A cursor at the final item yields no edges and no next page."""
        cursor = codec.create_cursor(five.entities[-1], scope)

        page = await resolver.resolve(scope, first=2, after=cursor)

        assert page.edges == []
        assert page.page_info.has_next_page is False
        assert page.page_info.has_previous_page is True
        assert page.page_info.start_cursor is None
        assert page.page_info.end_cursor is None

    @pytest.mark.asyncio
    async def test_first_zero_reports_remaining_items(self, resolver, scope):
        """first=0 returns an empty page whose flag still reflects the data."""
        page = await resolver.resolve(scope, first=0)

        assert page.edges == []
        assert page.page_info.has_next_page is True

    @pytest.mark.asyncio
    async def test_first_zero_on_empty_source(self, codec, scope):
        """first=0 over nothing has no next page."""
        resolver = ConnectionResolver(InMemorySource(), codec)

        page = await resolver.resolve(scope, first=0)

        assert page.page_info.has_next_page is False

    @pytest.mark.asyncio
    async def test_default_page_size(self, resolver, scope):
        """Without first/last the configured default is used."""
        page = await resolver.resolve(scope)

        assert ids(page) == ["1", "2"]

    @pytest.mark.asyncio
    async def test_edge_cursors_resume_after_node(self, resolver, scope):
        """Each edge cursor resumes right after its node."""
        page = await resolver.resolve(scope, first=3)

        resumed = await resolver.resolve(scope, first=1, after=page.edges[0].cursor)

        assert ids(resumed) == ["2"]

    @pytest.mark.asyncio
    async def test_filter_applies_before_paging(self, codec):
        """Only entities matching the filter are paged."""
        source = InMemorySource(product(str(i), stock=i % 2) for i in range(1, 7))
        scope = ConnectionScope(
            entity_type=EntityType.PRODUCT,
            filter=FilterExpr(conditions=(FilterCondition(field="stock", value=1),)),
        )
        resolver = ConnectionResolver(source, codec)

        page = await resolver.resolve(scope, first=10, include_total=True)

        assert ids(page) == ["1", "3", "5"]
        assert page.page_info.total_count == 3


# ──────────────────────────────────────────────────────────────
# Backward pagination
# ──────────────────────────────────────────────────────────────


class TestBackwardPagination:
    """Tests for last/before."""

    @pytest.mark.asyncio
    async def test_last_without_cursor(self, resolver, scope):
        """last=2 returns the final two items in forward order."""
        page = await resolver.resolve(scope, last=2)

        assert ids(page) == ["4", "5"]
        assert page.page_info.has_previous_page is True
        assert page.page_info.has_next_page is False

    @pytest.mark.asyncio
    async def test_last_before_cursor(self, resolver, scope):
        """last/before returns the items right before the cursor."""
        tail = await resolver.resolve(scope, last=2)

        page = await resolver.resolve(scope, last=2, before=tail.page_info.start_cursor)

        assert ids(page) == ["2", "3"]
        assert page.page_info.has_previous_page is True
        assert page.page_info.has_next_page is True

    @pytest.mark.asyncio
    async def test_before_first_item_is_empty(self, resolver, scope, codec, five):
        """Nothing precedes the first item."""
        cursor = codec.create_cursor(five.entities[0], scope)

        page = await resolver.resolve(scope, last=2, before=cursor)

        assert page.edges == []
        assert page.page_info.has_previous_page is False
        assert page.page_info.has_next_page is True

    @pytest.mark.asyncio
    async def test_before_alone_pages_backward(self, resolver, scope, codec, five):
        """A lone before cursor uses the default size backward."""
        cursor = codec.create_cursor(five.entities[4], scope)

        page = await resolver.resolve(scope, before=cursor)

        assert ids(page) == ["3", "4"]


# ──────────────────────────────────────────────────────────────
# Validation
# ──────────────────────────────────────────────────────────────


class TestArgumentValidation:
    """Tests for argument checks."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"first": 1, "last": 1},
            {"after": "a", "before": "b"},
            {"first": 1, "before": "b"},
            {"last": 1, "after": "a"},
            {"first": -1},
            {"last": -1},
            {"first": 11},
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_combinations(self, resolver, scope, kwargs):
        """Contradictory or out-of-range arguments are rejected before any fetch."""
        with pytest.raises(InvalidArgumentError) as exc:
            await resolver.resolve(scope, **kwargs)

        assert exc.value.code == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_max_page_size_allowed(self, resolver, scope):
        """The maximum itself is a valid size."""
        page = await resolver.resolve(scope, first=10)

        assert len(page.edges) == 5

    @pytest.mark.asyncio
    async def test_cursor_from_other_scope_rejected(self, resolver, scope, codec):
        """A cursor issued under another sort raises instead of restarting."""
        other = ConnectionScope(
            entity_type=EntityType.PRODUCT,
            sort=SortSpec.build([("price", "asc")]),
        )
        cursor = codec.encode((Decimal("1.00"), "1"), other)

        with pytest.raises(InvalidCursorError):
            await resolver.resolve(scope, first=2, after=cursor)

    def test_default_must_fit_maximum(self, five, codec):
        """A default above the maximum is a configuration error."""
        with pytest.raises(ValueError):
            ConnectionResolver(five, codec, default_page_size=50, max_page_size=10)
