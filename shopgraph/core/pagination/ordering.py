"""Sort specifications, filters and connection scopes.

A :class:`ConnectionScope` is the full (entity type, filter, sort)
configuration of a connection. Its fingerprint is embedded in every cursor
so a cursor can only be replayed against the configuration that issued it.

Sorting is always total: :meth:`SortSpec.build` appends the unique
tie-break field (``id`` by default) when the caller did not list it.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from functools import cmp_to_key
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from shopgraph.core.exceptions import InvalidArgumentError, jsonable_errors
from shopgraph.core.pagination.values import dump_value
from shopgraph.core.schemas.entity import Entity, EntityType

SortDirection = Literal["asc", "desc"]
FilterOp = Literal["eq", "ne", "lt", "lte", "gt", "gte", "in", "contains"]

FIELD_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


def compare_values(a: Any, b: Any) -> int:
    """Three-way comparison with ``None`` ordered before every other value."""
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


class SortField(BaseModel):
    """One ``(field, direction)`` component of a sort order."""

    field: str = Field(pattern=FIELD_PATTERN, description="Entity field name")
    direction: SortDirection = Field(default="asc", description="Sort direction")

    model_config = ConfigDict(frozen=True)


class SortSpec(BaseModel):
    """Ordered list of sort fields that always includes the tie-break field.

    Example:
        spec = SortSpec.build([("price", "desc")])
        spec.names  # ("price", "id")
    """

    fields: tuple[SortField, ...]
    tie_break: str = Field(default="id", pattern=FIELD_PATTERN)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_total_order(self) -> SortSpec:
        names = [f.field for f in self.fields]
        if len(set(names)) != len(names):
            msg = f"Duplicate sort fields: {names}"
            raise ValueError(msg)
        if self.tie_break not in names:
            msg = f"Sort must include tie-break field {self.tie_break!r}"
            raise ValueError(msg)
        return self

    @classmethod
    def build(
        cls,
        pairs: Iterable[SortField | tuple[str, SortDirection]] | None = None,
        *,
        tie_break: str = "id",
    ) -> SortSpec:
        """Create a spec from ``(field, direction)`` pairs, appending the tie-break."""
        fields = [
            p if isinstance(p, SortField) else SortField(field=p[0], direction=p[1])
            for p in pairs or ()
        ]
        if tie_break not in {f.field for f in fields}:
            fields.append(SortField(field=tie_break, direction="asc"))
        return cls(fields=tuple(fields), tie_break=tie_break)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.field for f in self.fields)

    def canonical(self) -> list[list[str]]:
        return [[f.field, f.direction] for f in self.fields]

    def key(self, entity: Entity) -> tuple[Any, ...]:
        """Sort-key tuple of ``entity`` under this spec."""
        return tuple(entity.get(f.field) for f in self.fields)

    def compare(self, a: tuple[Any, ...], b: tuple[Any, ...]) -> int:
        """Compare two sort-key tuples in this spec's order."""
        for sort_field, va, vb in zip(self.fields, a, b, strict=True):
            result = compare_values(va, vb)
            if sort_field.direction == "desc":
                result = -result
            if result:
                return result
        return 0

    def sorted(self, entities: Iterable[Entity]) -> list[Entity]:
        return sorted(entities, key=cmp_to_key(lambda x, y: self.compare(self.key(x), self.key(y))))


class FilterCondition(BaseModel):
    """Single predicate on an entity field."""

    field: str = Field(pattern=FIELD_PATTERN)
    op: FilterOp = "eq"
    value: Any = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_value_shape(self) -> FilterCondition:
        if self.op == "in" and not isinstance(self.value, (list, tuple)):
            msg = "'in' filters require a list value"
            raise ValueError(msg)
        if self.op == "contains" and not isinstance(self.value, str):
            msg = "'contains' filters require a string value"
            raise ValueError(msg)
        return self

    def canonical(self) -> list[Any]:
        return [self.field, self.op, dump_value(self.value)]

    def matches(self, entity: Entity) -> bool:
        actual = entity.get(self.field)
        expected = self.value
        if self.op == "eq":
            return actual == expected
        if self.op == "ne":
            return actual != expected
        if self.op == "in":
            return actual in expected
        if self.op == "contains":
            return isinstance(actual, str) and expected.lower() in actual.lower()
        if actual is None or expected is None:
            return False
        result = compare_values(actual, expected)
        return {
            "lt": result < 0,
            "lte": result <= 0,
            "gt": result > 0,
            "gte": result >= 0,
        }[self.op]


class FilterExpr(BaseModel):
    """Conjunction of filter conditions. Empty matches everything."""

    conditions: tuple[FilterCondition, ...] = ()

    model_config = ConfigDict(frozen=True)

    def canonical(self) -> list[list[Any]]:
        # AND is commutative, so condition order must not change the fingerprint
        return sorted(
            (c.canonical() for c in self.conditions),
            key=lambda c: json.dumps(c, sort_keys=True),
        )

    def matches(self, entity: Entity) -> bool:
        return all(c.matches(entity) for c in self.conditions)


class ConnectionScope(BaseModel):
    """Entity type, filter and sort that together define one ordered result set."""

    entity_type: EntityType
    filter: FilterExpr = Field(default_factory=FilterExpr)
    sort: SortSpec = Field(default_factory=SortSpec.build)

    model_config = ConfigDict(frozen=True)

    def canonical(self) -> dict[str, Any]:
        return {
            "t": str(self.entity_type),
            "f": self.filter.canonical(),
            "s": self.sort.canonical(),
        }

    @property
    def fingerprint(self) -> str:
        """Short stable digest of the scope configuration."""
        body = json.dumps(self.canonical(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(body.encode()).hexdigest()[:16]

    @property
    def cache_key(self) -> str:
        """Key under which the client cache stores pages of this connection."""
        return f"{self.entity_type}:{self.fingerprint}"


def build_scope(
    entity_type: EntityType,
    *,
    conditions: Iterable[FilterCondition | Mapping[str, Any]] = (),
    sort: Iterable[SortField | tuple[str, str]] | None = None,
    tie_break: str = "id",
) -> ConnectionScope:
    """Assemble a connection scope, reporting bad input as InvalidArgumentError."""
    try:
        return ConnectionScope(
            entity_type=entity_type,
            filter=FilterExpr(
                conditions=tuple(
                    c if isinstance(c, FilterCondition) else FilterCondition.model_validate(c)
                    for c in conditions
                )
            ),
            sort=SortSpec.build(sort, tie_break=tie_break),  # type: ignore[arg-type]
        )
    except ValidationError as e:
        raise InvalidArgumentError(
            detail="Invalid filter or sort",
            extra={"errors": jsonable_errors(e.errors(include_url=False, include_context=False))},
        ) from e


__all__ = [
    "ConnectionScope",
    "FilterCondition",
    "FilterExpr",
    "FilterOp",
    "SortDirection",
    "SortField",
    "SortSpec",
    "build_scope",
    "compare_values",
]
