"""Base GraphQL types for pagination, filtering and sorting.

Provides Relay-compliant pagination types that mirror the
core/pagination types but as Strawberry GraphQL types.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import strawberry
from strawberry.scalars import JSON
from strawberry.utils.str_converters import to_snake_case

from shopgraph.core.pagination import PageInfo


@strawberry.type(description="Pagination metadata following GraphQL Relay specification")
class PageInfoType:
    """GraphQL Relay PageInfo for cursor-based pagination.

    Mirrors shopgraph.core.pagination.schemas.PageInfo.
    """

    has_previous_page: bool = strawberry.field(description="Whether previous items exist")
    has_next_page: bool = strawberry.field(description="Whether more items exist")
    start_cursor: str | None = strawberry.field(
        default=None,
        description="Cursor of the first item",
    )
    end_cursor: str | None = strawberry.field(
        default=None,
        description="Cursor of the last item",
    )
    total_count: int | None = strawberry.field(
        default=None,
        description="Total count (only when includeTotal is requested)",
    )

    @classmethod
    def from_page_info(cls, page_info: PageInfo) -> PageInfoType:
        return cls(
            has_previous_page=page_info.has_previous_page,
            has_next_page=page_info.has_next_page,
            start_cursor=page_info.start_cursor,
            end_cursor=page_info.end_cursor,
            total_count=page_info.total_count,
        )


@strawberry.enum(description="Sort direction")
class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@strawberry.enum(description="Comparison applied by a filter condition")
class FilterOperator(Enum):
    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    IN = "in"
    CONTAINS = "contains"


@strawberry.input(description="One sort key. The id tie-break is appended automatically.")
class SortInput:
    field: str = strawberry.field(description="Field name, e.g. price or createdAt")
    direction: SortDirection = strawberry.field(
        default=SortDirection.ASC,
        description="Sort direction",
    )

    def to_sort_field(self) -> tuple[str, str]:
        return (to_snake_case(self.field), self.direction.value)


@strawberry.input(description="Predicate on one field. All conditions must match.")
class FilterInput:
    field: str = strawberry.field(description="Field name, e.g. status or customerId")
    op: FilterOperator = strawberry.field(
        default=FilterOperator.EQ,
        description="Comparison operator",
    )
    value: JSON | None = strawberry.field(
        default=None,
        description="Value to compare against (a list for IN)",
    )

    def to_condition(self) -> dict[str, Any]:
        return {"field": to_snake_case(self.field), "op": self.op.value, "value": self.value}


def conditions_from(filters: list[FilterInput] | None) -> list[dict[str, Any]]:
    return [f.to_condition() for f in filters or ()]


def sort_from(sort: list[SortInput] | None) -> list[tuple[str, str]] | None:
    return [s.to_sort_field() for s in sort] if sort else None


__all__ = [
    "FilterInput",
    "FilterOperator",
    "PageInfoType",
    "SortDirection",
    "SortInput",
    "conditions_from",
    "sort_from",
]
