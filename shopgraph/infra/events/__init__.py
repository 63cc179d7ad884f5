"""Entity change events."""

from shopgraph.infra.events.broker import (
    ALL_CHANNEL,
    EntityEvent,
    EntityEventType,
    EventBroker,
    get_event_broker,
    reset_event_broker,
)

__all__ = [
    "ALL_CHANNEL",
    "EntityEvent",
    "EntityEventType",
    "EventBroker",
    "get_event_broker",
    "reset_event_broker",
]
