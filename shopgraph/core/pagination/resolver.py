"""Connection resolver: Relay-style pagination over an ordered source."""

from __future__ import annotations

import logging
from typing import Any

from shopgraph.core.exceptions import InvalidArgumentError
from shopgraph.core.pagination.cursor import CursorCodec
from shopgraph.core.pagination.ordering import ConnectionScope
from shopgraph.core.pagination.schemas import Connection, Edge, PageInfo
from shopgraph.core.pagination.sources import OrderedSource, SeekDirection
from shopgraph.core.schemas.entity import Entity

logger = logging.getLogger(__name__)


class ConnectionResolver:
    """Resolve ``first/after`` and ``last/before`` arguments into a Connection.

    One extra item is fetched beyond the requested page to compute
    ``hasNextPage`` (forward) or ``hasPreviousPage`` (backward). The opposite
    flag is true iff at least one item sits at or before the cursor position.

    Example:
        resolver = ConnectionResolver(source, codec, default_page_size=20, max_page_size=100)
        page = await resolver.resolve(scope, first=2)
        next_page = await resolver.resolve(scope, first=2, after=page.page_info.end_cursor)
    """

    def __init__(
        self,
        source: OrderedSource,
        codec: CursorCodec,
        *,
        default_page_size: int = 20,
        max_page_size: int = 100,
    ) -> None:
        if not 1 <= default_page_size <= max_page_size:
            msg = "default_page_size must be between 1 and max_page_size"
            raise ValueError(msg)
        self.source = source
        self.codec = codec
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def resolve(
        self,
        scope: ConnectionScope,
        *,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
        include_total: bool = False,
    ) -> Connection[Entity]:
        """Return one page of ``scope``.

        Raises:
            InvalidArgumentError: On contradictory or out-of-range arguments.
            InvalidCursorError: If ``after``/``before`` was not issued for ``scope``.
        """
        self._validate(first=first, after=after, last=last, before=before)

        if first is None and last is None:
            if before is not None:
                last = self.default_page_size
            else:
                first = self.default_page_size

        forward = first is not None
        limit: int = first if forward else last  # type: ignore[assignment]
        cursor = after if forward else before
        direction: SeekDirection = "forward" if forward else "backward"

        seek = self.codec.decode(cursor, scope) if cursor is not None else None

        rows = await self.source.fetch(scope, seek=seek, direction=direction, limit=limit + 1)
        has_more = len(rows) > limit
        items = rows[:limit]

        has_before_cursor = False
        if seek is not None:
            opposite: SeekDirection = "backward" if forward else "forward"
            has_before_cursor = bool(
                await self.source.fetch(scope, seek=seek, direction=opposite, limit=1, inclusive=True)
            )

        if not forward:
            items.reverse()

        edges = [Edge[Entity](node=item, cursor=self.codec.create_cursor(item, scope)) for item in items]
        total = await self.source.count(scope) if include_total else None

        page_info = PageInfo(
            has_next_page=has_more if forward else has_before_cursor,
            has_previous_page=has_before_cursor if forward else has_more,
            start_cursor=edges[0].cursor if edges else None,
            end_cursor=edges[-1].cursor if edges else None,
            total_count=total,
        )
        logger.debug(
            "Resolved connection page",
            extra={
                "entity_type": str(scope.entity_type),
                "direction": direction,
                "limit": limit,
                "returned": len(edges),
                "has_next_page": page_info.has_next_page,
                "has_previous_page": page_info.has_previous_page,
            },
        )
        return Connection[Entity](edges=edges, page_info=page_info)

    def _validate(
        self,
        *,
        first: int | None,
        after: str | None,
        last: int | None,
        before: str | None,
    ) -> None:
        def reject(detail: str, **extra: Any) -> None:
            raise InvalidArgumentError(detail=detail, extra=extra or None)

        if first is not None and last is not None:
            reject("first and last cannot be combined", arguments=["first", "last"])
        if after is not None and before is not None:
            reject("after and before cannot be combined", arguments=["after", "before"])
        if first is not None and before is not None:
            reject("first cannot be combined with before", arguments=["first", "before"])
        if last is not None and after is not None:
            reject("last cannot be combined with after", arguments=["last", "after"])
        for name, value in (("first", first), ("last", last)):
            if value is None:
                continue
            if value < 0:
                reject(f"{name} must not be negative", argument=name, value=value)
            if value > self.max_page_size:
                reject(
                    f"{name} must not exceed {self.max_page_size}",
                    argument=name,
                    value=value,
                    max_page_size=self.max_page_size,
                )


__all__ = ["ConnectionResolver"]
