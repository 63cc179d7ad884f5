"""Connection page models shared by the resolver, the GraphQL layer and the client cache."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PageInfo(BaseModel):
    """Where a page sits inside its connection.

    ``start_cursor``/``end_cursor`` are ``None`` exactly when the page is empty.
    ``total_count`` is only computed when the caller asked for it, since it
    costs a COUNT over the whole filtered set.
    """

    has_previous_page: bool
    has_next_page: bool
    start_cursor: str | None = None
    end_cursor: str | None = None
    total_count: int | None = Field(default=None, ge=0)


class Edge(BaseModel, Generic[T]):
    node: T
    cursor: str


class Connection(BaseModel, Generic[T]):
    """One resolved page; edges are always in sort order, whichever way it was paged.

    Paging forward continues with ``after=page_info.end_cursor``, paging
    backward with ``before=page_info.start_cursor``.
    """

    edges: list[Edge[T]] = Field(default_factory=list)
    page_info: PageInfo

    @property
    def nodes(self) -> list[T]:
        return [edge.node for edge in self.edges]


__all__ = ["Connection", "Edge", "PageInfo"]
