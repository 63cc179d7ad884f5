"""Subscription resolvers for real-time GraphQL updates.

Provides WebSocket subscriptions for:
- entityEvents: committed creates, updates and deletes of catalog entities
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import strawberry

from shopgraph.features.graphql.types.catalog import (
    EntityEventKind,
    EntityEventPayload,
    EntityKind,
)
from shopgraph.infra.events import ALL_CHANNEL, get_event_broker

logger = logging.getLogger(__name__)

EntityTypesArg = Annotated[
    list[EntityKind] | None,
    strawberry.argument(description="Only these entity types (all when omitted)"),
]
EventTypesArg = Annotated[
    list[EntityEventKind] | None,
    strawberry.argument(description="Only these event types (all when omitted)"),
]


@strawberry.type(description="Root subscription type")
class Subscription:
    """GraphQL Subscription resolvers."""

    @strawberry.subscription(description="Stream committed changes to catalog entities")
    async def entity_events(
        self,
        entity_types: EntityTypesArg = None,
        event_types: EventTypesArg = None,
    ) -> AsyncGenerator[EntityEventPayload]:
        channels = tuple(kind.value for kind in entity_types) if entity_types else (ALL_CHANNEL,)
        wanted = {kind.value for kind in event_types} if event_types else None

        async with get_event_broker().subscribe(*channels) as events:
            logger.info("Subscribed to entity events", extra={"channels": list(channels)})
            try:
                async for event in events:
                    if wanted is not None and str(event.event_type) not in wanted:
                        continue
                    yield EntityEventPayload.from_event(event)
            finally:
                logger.info("Unsubscribed from entity events", extra={"channels": list(channels)})


__all__ = ["Subscription"]
