"""Cursor-based (keyset) pagination with Relay-style connections.

This module provides pagination that is:
- Stable: a unique tie-break field makes every sort order total
- Strict: cursors only decode against the scope (type, filter, sort) that issued them
- Performant: uses indexed seeks instead of OFFSET scans

Usage:
    scope = ConnectionScope(
        entity_type=EntityType.PRODUCT,
        sort=SortSpec.build([("price", "desc")]),
    )
    resolver = ConnectionResolver(SqlAlchemySource(session, Product), CursorCodec(secret))
    page = await resolver.resolve(scope, first=20)
"""

from shopgraph.core.pagination.cursor import CursorCodec, get_cursor_codec
from shopgraph.core.pagination.ordering import (
    ConnectionScope,
    FilterCondition,
    FilterExpr,
    SortField,
    SortSpec,
    build_scope,
)
from shopgraph.core.pagination.resolver import ConnectionResolver
from shopgraph.core.pagination.schemas import Connection, Edge, PageInfo
from shopgraph.core.pagination.sources import InMemorySource, OrderedSource, SqlAlchemySource

__all__ = [
    "Connection",
    "ConnectionResolver",
    "ConnectionScope",
    "CursorCodec",
    "Edge",
    "FilterCondition",
    "FilterExpr",
    "InMemorySource",
    "OrderedSource",
    "PageInfo",
    "SortField",
    "SortSpec",
    "SqlAlchemySource",
    "build_scope",
    "get_cursor_codec",
]
