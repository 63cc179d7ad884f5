"""Ordered data sources for the connection resolver.

A source returns entities of one scope in the scope's total order, resuming
from a sort-key tuple (keyset/seek pagination). Two implementations:

- :class:`InMemorySource`: an immutable snapshot, used for fixtures and
  in-process projections.
- :class:`SqlAlchemySource`: builds seek predicates on an ORM model.

Seek predicate for ORDER BY (a ASC, b DESC, id ASC) resuming after (v1, v2, v3):
    (a > v1) OR (a = v1 AND b < v2) OR (a = v1 AND b = v2 AND id > v3)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Literal, Protocol

from sqlalchemy import JSON, and_, func, inspect, or_, select

from shopgraph.core.exceptions import InvalidArgumentError
from shopgraph.core.pagination.ordering import ConnectionScope, FilterCondition

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from shopgraph.core.schemas.entity import Entity

logger = logging.getLogger(__name__)

SeekDirection = Literal["forward", "backward"]


class OrderedSource(Protocol):
    """Store collaborator providing a stable total order per scope."""

    async def fetch(
        self,
        scope: ConnectionScope,
        *,
        seek: tuple[Any, ...] | None,
        direction: SeekDirection,
        limit: int,
        inclusive: bool = False,
    ) -> list[Entity]:
        """Return up to ``limit`` entities beyond ``seek``.

        Forward results are in scope order; backward results are nearest-first
        (reverse scope order). ``inclusive`` also admits an entity whose key
        equals ``seek``. ``seek=None`` starts from the corresponding end.
        """
        ...

    async def count(self, scope: ConnectionScope) -> int:
        """Number of entities matching the scope's filter."""
        ...


def _passes_seek(cmp: int, direction: SeekDirection, inclusive: bool) -> bool:
    if direction == "forward":
        return cmp > 0 or (inclusive and cmp == 0)
    return cmp < 0 or (inclusive and cmp == 0)


class InMemorySource:
    """Immutable snapshot of entities."""

    def __init__(self, entities: Iterable[Entity] = ()) -> None:
        self._entities: tuple[Entity, ...] = tuple(entities)

    @property
    def entities(self) -> tuple[Entity, ...]:
        return self._entities

    def _matching(self, scope: ConnectionScope) -> list[Entity]:
        return [
            e
            for e in self._entities
            if e.type == scope.entity_type and scope.filter.matches(e)
        ]

    async def fetch(
        self,
        scope: ConnectionScope,
        *,
        seek: tuple[Any, ...] | None,
        direction: SeekDirection,
        limit: int,
        inclusive: bool = False,
    ) -> list[Entity]:
        rows = scope.sort.sorted(self._matching(scope))
        if direction == "backward":
            rows.reverse()
        if seek is not None:
            rows = [
                e
                for e in rows
                if _passes_seek(scope.sort.compare(scope.sort.key(e), seek), direction, inclusive)
            ]
        return rows[:limit]

    async def count(self, scope: ConnectionScope) -> int:
        return len(self._matching(scope))


class SqlAlchemySource:
    """Keyset pagination over one ORM model.

    Only mapped columns can be filtered on, and only non-nullable scalar
    columns can be sorted on (NULLs break seek predicates). Anything else raises
    :class:`InvalidArgumentError`.

    Example:
        source = SqlAlchemySource(session, Product)
        rows = await source.fetch(scope, seek=None, direction="forward", limit=21)
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type[Any],
        *,
        to_entity: Callable[[Any], Entity] | None = None,
    ) -> None:
        self._session = session
        self._model = model
        self._to_entity = to_entity or (lambda row: row.to_entity())
        columns = inspect(model).columns
        self._filterable = {key: getattr(model, key) for key in columns.keys()}
        self._sortable = {
            key: attr
            for key, attr in self._filterable.items()
            if not columns[key].nullable and not isinstance(columns[key].type, JSON)
        }

    @property
    def sortable_fields(self) -> frozenset[str]:
        return frozenset(self._sortable)

    async def fetch(
        self,
        scope: ConnectionScope,
        *,
        seek: tuple[Any, ...] | None,
        direction: SeekDirection,
        limit: int,
        inclusive: bool = False,
    ) -> list[Entity]:
        order = self._order_columns(scope)
        statement = self._filtered(scope)

        for column, desc in order:
            if desc != (direction == "backward"):
                statement = statement.order_by(column.desc())
            else:
                statement = statement.order_by(column.asc())

        if seek is not None:
            statement = statement.where(self._seek_condition(order, seek, direction, inclusive))

        result = await self._session.execute(statement.limit(limit))
        rows = list(result.scalars().all())
        logger.debug(
            "Fetched keyset page",
            extra={
                "entity_type": str(scope.entity_type),
                "direction": direction,
                "limit": limit,
                "returned": len(rows),
            },
        )
        return [self._to_entity(row) for row in rows]

    async def count(self, scope: ConnectionScope) -> int:
        statement = select(func.count()).select_from(self._filtered(scope).subquery())
        result = await self._session.execute(statement)
        return int(result.scalar_one())

    def _order_columns(self, scope: ConnectionScope) -> list[tuple[Any, bool]]:
        order = []
        for sort_field in scope.sort.fields:
            column = self._sortable.get(sort_field.field)
            if column is None:
                raise InvalidArgumentError(
                    detail=f"Cannot sort {scope.entity_type} by {sort_field.field!r}",
                    extra={"field": sort_field.field, "sortable": sorted(self._sortable)},
                )
            order.append((column, sort_field.direction == "desc"))
        return order

    def _filtered(self, scope: ConnectionScope) -> Select[Any]:
        statement = select(self._model)
        for condition in scope.filter.conditions:
            statement = statement.where(self._condition(condition))
        return statement

    def _condition(self, condition: FilterCondition) -> ColumnElement[bool]:
        column = self._filterable.get(condition.field)
        if column is None:
            raise InvalidArgumentError(
                detail=f"Cannot filter by {condition.field!r}",
                extra={"field": condition.field, "filterable": sorted(self._filterable)},
            )

        if condition.op == "in":
            return column.in_([self._coerce(column, v) for v in condition.value])
        if condition.op == "contains":
            escaped = (
                condition.value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            )
            return column.ilike(f"%{escaped}%", escape="\\")

        value = self._coerce(column, condition.value)
        if value is None:
            if condition.op == "eq":
                return column.is_(None)
            if condition.op == "ne":
                return column.is_not(None)
            raise InvalidArgumentError(
                detail=f"Operator {condition.op!r} requires a value",
                extra={"field": condition.field},
            )
        return {
            "eq": lambda: column == value,
            "ne": lambda: column != value,
            "lt": lambda: column < value,
            "lte": lambda: column <= value,
            "gt": lambda: column > value,
            "gte": lambda: column >= value,
        }[condition.op]()

    @staticmethod
    def _seek_condition(
        order: list[tuple[Any, bool]],
        seek: tuple[Any, ...],
        direction: SeekDirection,
        inclusive: bool,
    ) -> ColumnElement[bool]:
        or_conditions = []
        for i, (column, desc) in enumerate(order):
            eq_conditions = [prev == value for (prev, _), value in zip(order[:i], seek[:i])]
            # Ascending column read forward, or descending column read backward
            if desc == (direction == "backward"):
                compare_cond = column > seek[i]
            else:
                compare_cond = column < seek[i]
            or_conditions.append(and_(*eq_conditions, compare_cond) if eq_conditions else compare_cond)

        if inclusive:
            or_conditions.append(
                and_(*(column == value for (column, _), value in zip(order, seek)))
            )
        return or_(*or_conditions)

    @staticmethod
    def _coerce(column: Any, value: Any) -> Any:
        """Convert a JSON filter value to the column's Python type."""
        if value is None:
            return None
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return value

        try:
            if python_type is datetime and isinstance(value, str):
                return datetime.fromisoformat(value)
            if python_type is date and isinstance(value, str):
                return date.fromisoformat(value)
            if python_type is Decimal and not isinstance(value, Decimal):
                return Decimal(str(value))
            if python_type is int and not isinstance(value, (int, bool)):
                return int(value)
            if python_type is float and isinstance(value, (str, int)) and not isinstance(value, bool):
                return float(value)
            if python_type is str and not isinstance(value, str):
                return str(value)
        except (ValueError, InvalidOperation) as e:
            raise InvalidArgumentError(
                detail=f"Invalid value for {column.key!r}: {value!r}",
                extra={"field": column.key},
            ) from e
        return value


__all__ = ["InMemorySource", "OrderedSource", "SeekDirection", "SqlAlchemySource"]
