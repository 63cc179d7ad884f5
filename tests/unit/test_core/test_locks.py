"""Tests for per-key write serialization."""

from __future__ import annotations

import asyncio

import pytest

from shopgraph.core.database.locks import KeyedLock


class TestKeyedLock:
    """Tests for KeyedLock."""

    @pytest.mark.asyncio
    async def test_same_key_serialized(self):
        """Holders of one key never overlap."""
        locks = KeyedLock()
        active = 0
        peak = 0

        async def writer():
            nonlocal active, peak
            async with locks.hold("p1"):
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0)
                active -= 1

        await asyncio.gather(*(writer() for _ in range(5)))

        assert peak == 1

    @pytest.mark.asyncio
    async def test_different_keys_independent(self):
        """Holding one key does not block another."""
        locks = KeyedLock()

        async with locks.hold("p1"):
            async with asyncio.timeout(1):
                async with locks.hold("p2"):
                    assert locks.locked("p1")
                    assert locks.locked("p2")

    @pytest.mark.asyncio
    async def test_entries_released(self):
        """Locks are dropped once nobody holds or awaits them."""
        locks = KeyedLock()

        async with locks.hold("p1"):
            assert len(locks) == 1

        assert len(locks) == 0
        assert not locks.locked("p1")

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        """An exception inside the block still releases the key."""
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            async with locks.hold("p1"):
                raise RuntimeError("boom")

        assert len(locks) == 0
