"""Optimistic catalog client.

Ties together the normalized cache, the mutation reconciler and a
transport. Reads go through the cache; mutations are applied optimistically
and reconciled in the background.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from shopgraph.client.cache import NormalizedCache
from shopgraph.client.reconciler import (
    MutationKind,
    MutationReconciler,
    MutationRequest,
    PendingMutation,
)
from shopgraph.client.transport import GraphQLHttpTransport, GraphQLTransport
from shopgraph.core.pagination import PageInfo, build_scope
from shopgraph.core.schemas.entity import Entity, EntityType
from shopgraph.core.settings import ClientSettings, get_client_settings

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from shopgraph.core.acl import Authorizer
    from shopgraph.core.schemas.auth import Identity

logger = logging.getLogger(__name__)


def connection_key(
    entity_type: EntityType,
    *,
    conditions: Iterable[Mapping[str, Any]] = (),
    sort: Iterable[tuple[str, str]] | None = None,
) -> str:
    """Cache key of the connection with this filter and sort."""
    return build_scope(entity_type, conditions=conditions, sort=sort).cache_key


class ShopGraphClient:
    """Client-side entry point for catalog reads and optimistic writes.

    Example:
        async with ShopGraphClient.from_settings(token=token) as client:
            products = await client.fetch_page(EntityType.PRODUCT, first=20)
            pending = client.create(EntityType.PRODUCT, {"name": "Pen", "sku": "PEN-1", "price": "1.50"})
            outcome = await pending
    """

    def __init__(
        self,
        transport: GraphQLTransport,
        *,
        cache: NormalizedCache | None = None,
        settings: ClientSettings | None = None,
        authorizer: Authorizer | None = None,
        identity: Identity | None = None,
    ) -> None:
        self.settings = settings or get_client_settings()
        self.transport = transport
        self.cache = cache or NormalizedCache()
        self.reconciler = MutationReconciler(
            self.cache,
            transport,
            timeout=self.settings.mutation_timeout,
            provisional_prefix=self.settings.provisional_prefix,
            authorizer=authorizer,
            identity=identity,
        )

    @classmethod
    def from_settings(
        cls,
        *,
        token: str | None = None,
        settings: ClientSettings | None = None,
        **kwargs: Any,
    ) -> ShopGraphClient:
        """Build an HTTP client for the configured endpoint."""
        settings = settings or get_client_settings()
        transport = GraphQLHttpTransport(
            settings.endpoint,
            token=token,
            timeout_seconds=settings.request_timeout,
        )
        return cls(transport, settings=settings, **kwargs)

    # ──────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────

    def read(self, entity_type: EntityType, entity_id: str) -> Entity | None:
        return self.cache.read(entity_type, entity_id)

    async def fetch(self, entity_type: EntityType, entity_id: str) -> Entity | None:
        """Load one entity from the API into the cache."""
        entity = await self.transport.fetch_node(entity_type, entity_id)
        if entity is None:
            return None
        return self.cache.write(entity)

    async def fetch_page(
        self,
        entity_type: EntityType,
        *,
        conditions: Iterable[Mapping[str, Any]] = (),
        sort: Iterable[tuple[str, str]] | None = None,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
        include_total: bool = False,
    ) -> tuple[list[Entity], PageInfo]:
        """Load one connection page into the cache.

        A page fetched with ``after`` extends the cached connection; any other
        page replaces it.

        Returns:
            The composed cached connection (including optimistic inserts) and
            the page info of the fetched page.
        """
        conditions = [dict(c) for c in conditions]
        sort = list(sort) if sort else None
        key = connection_key(entity_type, conditions=conditions, sort=sort)
        entities, page_info = await self.transport.fetch_page(
            entity_type,
            conditions=conditions,
            sort=sort,
            first=first,
            after=after,
            last=last,
            before=before,
            include_total=include_total,
        )
        self.cache.store_connection(key, entities, page_info, append=after is not None)
        logger.debug(
            "Fetched connection page",
            extra={"entity_type": str(entity_type), "key": key, "count": len(entities)},
        )
        return self.cache.read_connection(key), page_info

    # ──────────────────────────────────────────────────────────────
    # Optimistic writes
    # ──────────────────────────────────────────────────────────────

    def create(
        self,
        entity_type: EntityType,
        fields: Mapping[str, Any],
        *,
        idempotency_key: str | None = None,
        connections: Iterable[str] = (),
    ) -> PendingMutation:
        """Create an entity; it appears in ``connections`` until confirmed or rolled back."""
        return self.reconciler.dispatch(
            MutationRequest(
                operation=f"create{entity_type}",
                entity_type=entity_type,
                kind=MutationKind.CREATE,
                input=dict(fields),
                idempotency_key=idempotency_key,
                connections=tuple(connections),
            )
        )

    def update(
        self,
        entity_type: EntityType,
        entity_id: str,
        fields: Mapping[str, Any],
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> PendingMutation:
        payload = {"id": entity_id, **fields}
        if expected_version is not None:
            payload["expected_version"] = expected_version
        return self.reconciler.dispatch(
            MutationRequest(
                operation=f"update{entity_type}",
                entity_type=entity_type,
                kind=MutationKind.UPDATE,
                input=payload,
                target_id=entity_id,
                idempotency_key=idempotency_key,
            )
        )

    def delete(
        self,
        entity_type: EntityType,
        entity_id: str,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> PendingMutation:
        payload: dict[str, Any] = {"id": entity_id}
        if expected_version is not None:
            payload["expected_version"] = expected_version
        return self.reconciler.dispatch(
            MutationRequest(
                operation=f"delete{entity_type}",
                entity_type=entity_type,
                kind=MutationKind.DELETE,
                input=payload,
                target_id=entity_id,
                idempotency_key=idempotency_key,
            )
        )

    async def aclose(self) -> None:
        await self.reconciler.drain()
        await self.transport.aclose()

    async def __aenter__(self) -> ShopGraphClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


__all__ = ["ShopGraphClient", "connection_key"]
