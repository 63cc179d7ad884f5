"""Unit tests for sort specifications, filters and scopes."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from shopgraph.core.exceptions import InvalidArgumentError
from shopgraph.core.pagination import (
    ConnectionScope,
    FilterCondition,
    FilterExpr,
    SortSpec,
    build_scope,
)
from shopgraph.core.schemas.entity import Entity, EntityType


def product(id: str, **fields) -> Entity:  # noqa: A002
    return Entity(type=EntityType.PRODUCT, id=id, fields=fields)


class TestSortSpec:
    """Tests for SortSpec construction and ordering."""

    def test_tie_break_appended(self):
        """build() appends id so the order is total."""
        spec = SortSpec.build([("price", "desc")])

        assert spec.names == ("price", "id")
        assert spec.fields[-1].direction == "asc"

    def test_explicit_tie_break_kept(self):
        """An explicit id sort keeps its direction and position."""
        spec = SortSpec.build([("id", "desc"), ("price", "asc")])

        assert spec.names == ("id", "price")
        assert spec.fields[0].direction == "desc"

    def test_default_is_id_ascending(self):
        """No sort means id ascending."""
        assert SortSpec.build().canonical() == [["id", "asc"]]

    def test_duplicate_fields_rejected(self):
        """The same field cannot appear twice."""
        with pytest.raises(ValidationError):
            SortSpec.build([("price", "asc"), ("price", "desc")])

    def test_missing_tie_break_rejected(self):
        """Direct construction without the tie-break field is invalid."""
        from shopgraph.core.pagination import SortField

        with pytest.raises(ValidationError):
            SortSpec(fields=(SortField(field="price"),))

    def test_sorted_breaks_ties_by_id(self):
        """Equal sort values fall back to id order."""
        spec = SortSpec.build([("price", "desc")])
        items = [
            product("b", price=Decimal("1")),
            product("a", price=Decimal("1")),
            product("c", price=Decimal("2")),
        ]

        assert [e.id for e in spec.sorted(items)] == ["c", "a", "b"]

    def test_none_sorts_first(self):
        """None orders before every other value when ascending."""
        spec = SortSpec.build([("description", "asc")])
        items = [product("a", description="x"), product("b", description=None)]

        assert [e.id for e in spec.sorted(items)] == ["b", "a"]


class TestFilterCondition:
    """Tests for filter predicates."""

    @pytest.mark.parametrize(
        ("op", "value", "expected"),
        [
            ("eq", 5, True),
            ("ne", 5, False),
            ("lt", 6, True),
            ("lte", 5, True),
            ("gt", 5, False),
            ("gte", 5, True),
            ("in", [1, 5], True),
        ],
    )
    def test_operators(self, op, value, expected):
        """Each comparison operator matches as documented."""
        condition = FilterCondition(field="stock", op=op, value=value)

        assert condition.matches(product("p", stock=5)) is expected

    def test_contains_is_case_insensitive(self):
        """contains performs a case-insensitive substring match."""
        condition = FilterCondition(field="name", op="contains", value="PEN")

        assert condition.matches(product("p", name="Blue pen"))
        assert not condition.matches(product("q", name=None))

    def test_in_requires_list(self):
        """in takes a list value."""
        with pytest.raises(ValidationError):
            FilterCondition(field="stock", op="in", value=5)

    def test_comparison_with_missing_value_is_false(self):
        """Ordering comparisons never match a missing field."""
        assert not FilterCondition(field="stock", op="gt", value=1).matches(product("p"))

    def test_empty_filter_matches_everything(self):
        """An empty conjunction is true."""
        assert FilterExpr().matches(product("p"))


class TestConnectionScope:
    """Tests for scope fingerprints and build_scope."""

    def test_fingerprint_stable(self):
        """Equal configurations have equal fingerprints."""
        a = ConnectionScope(entity_type=EntityType.PRODUCT, sort=SortSpec.build([("price", "asc")]))
        b = ConnectionScope(entity_type=EntityType.PRODUCT, sort=SortSpec.build([("price", "asc")]))

        assert a.fingerprint == b.fingerprint
        assert a.cache_key.startswith("Product:")

    def test_fingerprint_depends_on_filter_value(self):
        """Different filter values are different scopes."""
        a = build_scope(EntityType.ORDER, conditions=[{"field": "status", "value": "paid"}])
        b = build_scope(EntityType.ORDER, conditions=[{"field": "status", "value": "shipped"}])

        assert a.fingerprint != b.fingerprint

    def test_build_scope_rejects_bad_field_name(self):
        """Invalid field names surface as InvalidArgumentError."""
        with pytest.raises(InvalidArgumentError) as exc:
            build_scope(EntityType.PRODUCT, sort=[("price; drop", "asc")])

        assert exc.value.code == "INVALID_ARGUMENT"
        assert exc.value.extra["errors"]

    def test_build_scope_rejects_bad_operator(self):
        """Unknown operators are invalid arguments."""
        with pytest.raises(InvalidArgumentError):
            build_scope(EntityType.PRODUCT, conditions=[{"field": "stock", "op": "like", "value": 1}])
