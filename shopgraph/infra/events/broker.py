"""In-process publish/subscribe broker for entity change events.

Subscribers each get a bounded asyncio queue per channel. Publishing never
blocks: a subscriber whose queue is full loses the event and the drop is
logged. The whole service runs in one process, so no external bus is used.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shopgraph.core.schemas.entity import Entity

logger = logging.getLogger(__name__)

ALL_CHANNEL = "*"


class EntityEventType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class EntityEvent:
    """A committed change to one entity."""

    event_type: EntityEventType
    entity: Entity
    event_id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def channel(self) -> str:
        return str(self.entity.type)


class EventBroker:
    """Fan-out of entity events to local subscribers.

    Example:
        broker = EventBroker()
        async with broker.subscribe("Product") as events:
            async for event in events:
                ...
        await broker.publish(EntityEvent(EntityEventType.CREATED, entity))
    """

    def __init__(self, max_queue_size: int = 256) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue[EntityEvent]]] = defaultdict(set)

    @property
    def subscriber_count(self) -> int:
        return sum(len(queues) for queues in self._subscribers.values())

    async def publish(self, event: EntityEvent) -> int:
        """Deliver ``event`` to its channel and to wildcard subscribers.

        Returns:
            Number of subscribers that received the event.
        """
        delivered = 0
        for channel in (event.channel, ALL_CHANNEL):
            for queue in list(self._subscribers.get(channel, ())):
                try:
                    queue.put_nowait(event)
                    delivered += 1
                except asyncio.QueueFull:
                    logger.warning(
                        "Dropped entity event for slow subscriber",
                        extra={"channel": channel, "event_id": event.event_id},
                    )
        logger.debug(
            "Published entity event",
            extra={
                "channel": event.channel,
                "event_type": str(event.event_type),
                "entity_id": event.entity.id,
                "delivered": delivered,
            },
        )
        return delivered

    @contextlib.asynccontextmanager
    async def subscribe(self, *channels: str) -> AsyncIterator[AsyncIterator[EntityEvent]]:
        """Subscribe to one or more channels (entity type names, or ``"*"``)."""
        queue: asyncio.Queue[EntityEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        targets = channels or (ALL_CHANNEL,)
        for channel in targets:
            self._subscribers[channel].add(queue)
        try:
            yield self._drain(queue)
        finally:
            for channel in targets:
                self._subscribers[channel].discard(queue)
                if not self._subscribers[channel]:
                    del self._subscribers[channel]

    @staticmethod
    async def _drain(queue: asyncio.Queue[EntityEvent]) -> AsyncIterator[EntityEvent]:
        while True:
            yield await queue.get()


_broker: EventBroker | None = None


def get_event_broker() -> EventBroker:
    """Get the process-wide event broker, creating it on first use."""
    global _broker
    if _broker is None:
        _broker = EventBroker()
    return _broker


def reset_event_broker(**kwargs: Any) -> EventBroker:
    """Replace the process-wide broker (used on startup and in tests)."""
    global _broker
    _broker = EventBroker(**kwargs)
    return _broker


__all__ = [
    "ALL_CHANNEL",
    "EntityEvent",
    "EntityEventType",
    "EventBroker",
    "get_event_broker",
    "reset_event_broker",
]
