"""Unit tests for cursor encoding and scope binding."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from shopgraph.core.exceptions import InvalidCursorError
from shopgraph.core.pagination import (
    ConnectionScope,
    CursorCodec,
    FilterCondition,
    FilterExpr,
    SortSpec,
    get_cursor_codec,
)
from shopgraph.core.pagination.values import dump_value, load_value
from shopgraph.core.schemas.entity import Entity, EntityType


@pytest.fixture
def codec() -> CursorCodec:
    return CursorCodec("unit-test-secret")


@pytest.fixture
def by_price() -> ConnectionScope:
    return ConnectionScope(
        entity_type=EntityType.PRODUCT,
        sort=SortSpec.build([("price", "desc")]),
    )


def _reason(exc: pytest.ExceptionInfo[InvalidCursorError]) -> str:
    return exc.value.extra["reason"]


# ──────────────────────────────────────────────────────────────
# Encoding
# ──────────────────────────────────────────────────────────────


class TestCursorEncoding:
    """Tests for CursorCodec.encode/decode."""

    def test_decode_returns_encoded_key(self, codec, by_price):
        """A cursor decodes to the exact sort key it was built from."""
        key = (Decimal("9.99"), "p-1")

        assert codec.decode(codec.encode(key, by_price), by_price) == key

    def test_typed_values_survive(self, codec):
        """Datetimes, decimals and UUIDs keep their Python types."""
        scope = ConnectionScope(
            entity_type=EntityType.ORDER,
            sort=SortSpec.build([("created_at", "asc"), ("total", "asc"), ("customer_id", "asc")]),
        )
        key = (
            datetime(2025, 1, 15, 10, 30, tzinfo=UTC),
            Decimal("10.50"),
            UUID("6f1c2b1e-7d4a-4b8e-9a53-0f7d2c9e1a11"),
            "o-9",
        )

        decoded = codec.decode(codec.encode(key, scope), scope)

        assert decoded == key
        assert isinstance(decoded[1], Decimal)

    def test_cursor_is_url_safe_without_padding(self, codec, by_price):
        """Cursors can be placed in URLs as-is."""
        cursor = codec.encode((Decimal("1.00"), "p-1"), by_price)

        assert "=" not in cursor
        assert "+" not in cursor
        assert "/" not in cursor

    def test_key_arity_must_match_sort(self, codec, by_price):
        """Encoding a key of the wrong length is a programming error."""
        with pytest.raises(ValueError, match="Sort key"):
            codec.encode(("p-1",), by_price)

    def test_create_cursor_uses_entity_sort_key(self, codec, by_price):
        """create_cursor encodes the entity's values for the scope's sort fields."""
        entity = Entity(type=EntityType.PRODUCT, id="p-7", fields={"price": Decimal("3.25")})

        cursor = codec.create_cursor(entity, by_price)

        assert codec.decode(cursor, by_price) == (Decimal("3.25"), "p-7")

    def test_empty_secret_rejected(self):
        """A codec needs a key."""
        with pytest.raises(ValueError):
            CursorCodec("")


# ──────────────────────────────────────────────────────────────
# Rejection
# ──────────────────────────────────────────────────────────────


class TestCursorRejection:
    """Cursors only decode against the configuration that issued them."""

    def test_other_sort_rejected(self, codec, by_price):
        """Changing the sort direction invalidates the cursor."""
        cursor = codec.encode((Decimal("1.00"), "p-1"), by_price)
        ascending = ConnectionScope(
            entity_type=EntityType.PRODUCT,
            sort=SortSpec.build([("price", "asc")]),
        )

        with pytest.raises(InvalidCursorError) as exc:
            codec.decode(cursor, ascending)

        assert _reason(exc) == "scope_mismatch"

    def test_other_filter_rejected(self, codec, by_price):
        """Adding a filter invalidates the cursor."""
        cursor = codec.encode((Decimal("1.00"), "p-1"), by_price)
        filtered = by_price.model_copy(
            update={"filter": FilterExpr(conditions=(FilterCondition(field="stock", op="gt", value=0),))}
        )

        with pytest.raises(InvalidCursorError) as exc:
            codec.decode(cursor, filtered)

        assert _reason(exc) == "scope_mismatch"

    def test_other_entity_type_rejected(self, codec):
        """A product cursor is not a customer cursor, even with the same sort."""
        products = ConnectionScope(entity_type=EntityType.PRODUCT)
        customers = ConnectionScope(entity_type=EntityType.CUSTOMER)
        cursor = codec.encode(("x-1",), products)

        with pytest.raises(InvalidCursorError):
            codec.decode(cursor, customers)

    def test_filter_order_does_not_matter(self, codec):
        """Conditions are a conjunction; their order is not part of the scope."""
        a = FilterCondition(field="status", value="paid")
        b = FilterCondition(field="total", op="gte", value=Decimal("10"))
        first = ConnectionScope(entity_type=EntityType.ORDER, filter=FilterExpr(conditions=(a, b)))
        second = ConnectionScope(entity_type=EntityType.ORDER, filter=FilterExpr(conditions=(b, a)))

        cursor = codec.encode(("o-1",), first)

        assert codec.decode(cursor, second) == ("o-1",)

    def test_tampered_cursor_rejected(self, codec, by_price):
        """Editing the payload breaks the checksum."""
        cursor = codec.encode((Decimal("1.00"), "p-1"), by_price)
        payload = json.loads(base64.urlsafe_b64decode(cursor + "=" * (-len(cursor) % 4)))
        payload["k"][1] = "p-2"
        forged = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")

        with pytest.raises(InvalidCursorError) as exc:
            codec.decode(forged, by_price)

        assert _reason(exc) == "checksum_mismatch"

    def test_other_secret_rejected(self, codec, by_price):
        """A cursor signed with another key does not verify."""
        cursor = CursorCodec("another-secret").encode((Decimal("1.00"), "p-1"), by_price)

        with pytest.raises(InvalidCursorError):
            codec.decode(cursor, by_price)

    @pytest.mark.parametrize("cursor", ["", "not-valid-base64!!!", "e30", "WzEsMiwzXQ"])
    def test_malformed_cursor_rejected(self, codec, by_price, cursor):
        """Garbage, empty objects and non-object JSON are all invalid cursors."""
        with pytest.raises(InvalidCursorError) as exc:
            codec.decode(cursor, by_price)

        assert exc.value.code == "INVALID_CURSOR"

    def test_configured_codec_uses_settings_secret(self, by_price, monkeypatch):
        """get_cursor_codec signs with PAGINATION_CURSOR_SECRET."""
        monkeypatch.setenv("PAGINATION_CURSOR_SECRET", "from-env")
        cursor = get_cursor_codec().encode(("p-1",), ConnectionScope(entity_type=EntityType.PRODUCT))

        assert CursorCodec("from-env").decode(
            cursor, ConnectionScope(entity_type=EntityType.PRODUCT)
        ) == ("p-1",)


# ──────────────────────────────────────────────────────────────
# Tagged values
# ──────────────────────────────────────────────────────────────


class TestTaggedValues:
    """Tests for the tagged JSON value encoding."""

    def test_native_values_untouched(self):
        """JSON-native values are stored as-is."""
        for value in ("a", 1, 1.5, True, None):
            assert dump_value(value) == value

    def test_datetime_and_string_are_distinct(self):
        """A datetime never decodes as the string of its ISO form."""
        when = datetime(2025, 1, 15, tzinfo=UTC)

        assert load_value(dump_value(when)) == when
        assert load_value(dump_value(when.isoformat())) == when.isoformat()

    def test_nested_objects(self):
        """Dicts and lists are encoded recursively."""
        value = {"unit_price": Decimal("2.50"), "items": [1, {"a": None}]}

        assert load_value(dump_value(value)) == value

    @pytest.mark.parametrize(
        "raw",
        [{"$dec": "not-a-number"}, {"$nope": "x"}, {"$dt": 1}, {"a": 1, "b": 2}, {"$obj": "x"}],
    )
    def test_invalid_tags_raise(self, raw):
        """Unknown tags and malformed payloads raise ValueError."""
        with pytest.raises(ValueError):
            load_value(raw)

    def test_unsupported_type_raises(self):
        """Values without a tagged form are rejected."""
        with pytest.raises(TypeError):
            dump_value(object())
