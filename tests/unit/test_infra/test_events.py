"""Tests for the in-process entity event broker."""

from __future__ import annotations

import asyncio

import pytest

from shopgraph.core.schemas.entity import Entity, EntityType
from shopgraph.infra.events import EntityEvent, EntityEventType, EventBroker


def event(entity_type: EntityType = EntityType.PRODUCT, entity_id: str = "p1") -> EntityEvent:
    return EntityEvent(EntityEventType.UPDATED, Entity(type=entity_type, id=entity_id))


class TestEventBroker:
    """Tests for EventBroker publish/subscribe."""

    @pytest.mark.asyncio
    async def test_channel_delivery(self):
        """Subscribers receive events of their channel only."""
        broker = EventBroker()

        async with broker.subscribe("Product") as events:
            assert await broker.publish(event(EntityType.CUSTOMER, "c1")) == 0
            assert await broker.publish(event()) == 1

            received = await asyncio.wait_for(anext(events), timeout=1)

        assert received.entity.id == "p1"

    @pytest.mark.asyncio
    async def test_wildcard_subscription(self):
        """Subscribing without channels receives everything."""
        broker = EventBroker()

        async with broker.subscribe() as events:
            await broker.publish(event(EntityType.ORDER, "o1"))
            received = await asyncio.wait_for(anext(events), timeout=1)

        assert received.channel == "Order"

    @pytest.mark.asyncio
    async def test_unsubscribe_on_exit(self):
        """Leaving the context removes the subscription."""
        broker = EventBroker()

        async with broker.subscribe("Product"):
            assert broker.subscriber_count == 1

        assert broker.subscriber_count == 0
        assert await broker.publish(event()) == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops(self, caplog):
        """A slow subscriber loses events instead of blocking the publisher."""
        broker = EventBroker(max_queue_size=1)

        async with broker.subscribe("Product"):
            assert await broker.publish(event()) == 1
            assert await broker.publish(event()) == 0

        assert "Dropped entity event" in caplog.text
