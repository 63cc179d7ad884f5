"""Normalized client cache with optimistic layers.

Entities are stored once, keyed by ``(type, id)``. Connection pages hold
ordered entity refs only, so one write is visible in every page that
references the entity.

Unconfirmed mutations live in optimistic layers stacked on top of the
confirmed state in dispatch order. Reads compose the confirmed entity with
every layer that touches it, so removing one layer never disturbs another.

Notifications raised inside :meth:`NormalizedCache.batch` are coalesced and
delivered once the outermost batch exits; a subscriber sees each affected
entity at most once per batch and never a half-applied change.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from shopgraph.core.pagination import PageInfo
from shopgraph.core.schemas.entity import Entity, EntityRef, EntityType

logger = logging.getLogger(__name__)

_CLOSED = object()

# Provisional ids stay readable for this many most recent relocations
MAX_RELOCATIONS = 1024


@dataclass
class OptimisticLayer:
    """Provisional effect of one pending mutation."""

    layer_id: str
    ref: EntityRef
    fields: dict[str, Any] = field(default_factory=dict)
    removed: bool = False
    connections: tuple[str, ...] = ()


@dataclass
class ConnectionRecord:
    """Confirmed membership of one cached connection."""

    refs: list[EntityRef] = field(default_factory=list)
    page_info: PageInfo | None = None


class CacheSubscription:
    """Async stream of changes to one entity or one connection.

    Entity subscriptions yield the composed entity, or ``None`` once it is
    gone. Connection subscriptions yield the composed list of entities. An
    entity subscription follows relocations: after the provisional id is
    swapped for the real one, :attr:`target` is the new ref.

    Example:
        async with cache.subscribe(EntityType.PRODUCT, "tmp:1") as updates:
            async for entity in updates:
                ...
    """

    def __init__(self, cache: NormalizedCache, target: EntityRef | str) -> None:
        self._cache = cache
        self._target = target
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def target(self) -> EntityRef | str:
        return self._target

    @property
    def closed(self) -> bool:
        return self._closed

    def drain(self) -> list[Any]:
        """Return every queued notification without waiting."""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSED:
                items.append(item)
        return items

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cache._unsubscribe(self)
        self._queue.put_nowait(_CLOSED)

    def _push(self, value: Any) -> None:
        if not self._closed:
            self._queue.put_nowait(value)

    def __aiter__(self) -> AsyncIterator[Any]:
        return self

    async def __anext__(self) -> Any:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        value = await self._queue.get()
        if value is _CLOSED:
            raise StopAsyncIteration
        return value

    async def __aenter__(self) -> CacheSubscription:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.close()


class NormalizedCache:
    """Map of ``(EntityType, id) -> Entity`` plus cached connection pages.

    Relocated ids keep resolving to their new id until ``max_relocations``
    newer relocations have happened; subscribers and layers are moved to the
    new id immediately and never depend on the old mapping.

    Example:
        cache = NormalizedCache()
        cache.write(Entity(type=EntityType.PRODUCT, id="p-1", fields={"name": "Pen"}))
        cache.read(EntityType.PRODUCT, "p-1").get("name")  # "Pen"
    """

    def __init__(self, *, max_relocations: int = MAX_RELOCATIONS) -> None:
        self.max_relocations = max_relocations
        self._entities: dict[EntityRef, Entity] = {}
        self._layers: dict[str, OptimisticLayer] = {}
        self._connections: dict[str, ConnectionRecord] = {}
        self._relocations: dict[EntityRef, EntityRef] = {}
        self._subscribers: dict[EntityRef, set[CacheSubscription]] = defaultdict(set)
        self._connection_subscribers: dict[str, set[CacheSubscription]] = defaultdict(set)
        self._batch_depth = 0
        self._dirty_refs: set[EntityRef] = set()
        self._dirty_connections: set[str] = set()

    # ──────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────

    def resolve(self, ref: EntityRef) -> EntityRef:
        """Follow relocations from a (possibly provisional) ref to the current one."""
        seen = set()
        while ref in self._relocations and ref not in seen:
            seen.add(ref)
            ref = self._relocations[ref]
        return ref

    def read(self, entity_type: EntityType | str, entity_id: str) -> Entity | None:
        """Current view of an entity, including pending optimistic effects."""
        return self._compose(self.resolve(EntityRef(EntityType(entity_type), entity_id)))

    def read_connection(self, key: str) -> list[Entity]:
        """Entities of a cached connection in order, optimistic inserts last."""
        return [
            entity
            for ref in self._connection_refs(key)
            if (entity := self._compose(ref)) is not None
        ]

    def connection_page_info(self, key: str) -> PageInfo | None:
        record = self._connections.get(key)
        return record.page_info if record else None

    @property
    def layer_ids(self) -> tuple[str, ...]:
        return tuple(self._layers)

    def dump(self) -> dict[str, Any]:
        """Deterministic snapshot of everything a reader could observe."""
        refs = set(self._entities) | {layer.ref for layer in self._layers.values()}
        keys = set(self._connections) | {
            key for layer in self._layers.values() for key in layer.connections
        }
        entities = {}
        for ref in sorted(refs):
            entity = self._compose(ref)
            if entity is not None:
                entities[f"{ref.type}:{ref.id}"] = entity.model_dump(mode="json")
        return {
            "entities": entities,
            "connections": {
                key: [f"{ref.type}:{ref.id}" for ref in self._connection_refs(key)]
                for key in sorted(keys)
            },
            "relocations": {
                f"{old.type}:{old.id}": f"{new.type}:{new.id}"
                for old, new in sorted(self._relocations.items())
            },
            "layers": list(self._layers),
        }

    # ──────────────────────────────────────────────────────────────
    # Confirmed writes
    # ──────────────────────────────────────────────────────────────

    def write(self, entity: Entity) -> Entity | None:
        """Upsert a confirmed entity, field by field.

        A write carrying an older ``version`` than the cached one is ignored,
        so late confirmations cannot roll the entity back.
        """
        ref = entity.ref
        existing = self._entities.get(ref)
        if existing is not None and _is_stale(existing, entity):
            logger.debug(
                "Ignored stale cache write",
                extra={"entity_type": str(ref.type), "entity_id": ref.id},
            )
            return self._compose(ref)

        if existing is None:
            self._entities[ref] = entity.model_copy(update={"pending": False})
        else:
            self._entities[ref] = existing.merged(entity.fields, pending=False)
        self._touch(ref)
        return self._compose(ref)

    def evict(self, entity_type: EntityType | str, entity_id: str) -> bool:
        """Remove an entity and every connection reference to it."""
        ref = self.resolve(EntityRef(EntityType(entity_type), entity_id))
        existed = self._entities.pop(ref, None) is not None
        with self.batch():
            for key, record in self._connections.items():
                if ref in record.refs:
                    record.refs = [r for r in record.refs if r != ref]
                    self._dirty_connections.add(key)
            self._touch(ref)
        return existed

    def relocate(self, entity_type: EntityType | str, old_id: str, new_id: str) -> None:
        """Atomically move an entity from ``old_id`` to ``new_id``.

        Connection references, optimistic layers and subscribers of the old
        id move with it; later reads of the old id resolve to the new one.
        """
        entity_type = EntityType(entity_type)
        old = self.resolve(EntityRef(entity_type, old_id))
        new = EntityRef(entity_type, new_id)
        if old == new:
            return

        with self.batch():
            entity = self._entities.pop(old, None)
            if entity is not None and new not in self._entities:
                self._entities[new] = entity.model_copy(update={"id": new_id})

            for key, record in self._connections.items():
                if old not in record.refs:
                    continue
                if new in record.refs:
                    record.refs = [r for r in record.refs if r != old]
                else:
                    record.refs = [new if r == old else r for r in record.refs]
                self._dirty_connections.add(key)

            for layer in self._layers.values():
                if layer.ref == old:
                    layer.ref = new

            self._relocations[old] = new
            while len(self._relocations) > self.max_relocations:
                del self._relocations[next(iter(self._relocations))]
            moved = self._subscribers.pop(old, set())
            for subscription in moved:
                subscription._target = new
            self._subscribers[new] |= moved
            self._touch(new)

        logger.debug(
            "Relocated cache entity",
            extra={"entity_type": str(entity_type), "old_id": old_id, "new_id": new_id},
        )

    def store_connection(
        self,
        key: str,
        entities: Iterable[Entity],
        page_info: PageInfo | None = None,
        *,
        append: bool = False,
    ) -> None:
        """Cache one page of a connection.

        Entities go to the normalized map; the connection keeps their refs.
        ``append`` extends the cached list (next page), otherwise it is replaced.
        """
        with self.batch():
            refs = []
            for entity in entities:
                self.write(entity)
                refs.append(entity.ref)
            record = self._connections.setdefault(key, ConnectionRecord())
            if append:
                record.refs.extend(ref for ref in refs if ref not in record.refs)
            else:
                record.refs = refs
            if page_info is not None:
                record.page_info = page_info
            self._dirty_connections.add(key)

    # ──────────────────────────────────────────────────────────────
    # Optimistic layers
    # ──────────────────────────────────────────────────────────────

    def apply_layer(self, layer: OptimisticLayer) -> Entity | None:
        """Stack a provisional effect on top of every earlier one."""
        if layer.layer_id in self._layers:
            msg = f"Layer {layer.layer_id!r} already applied"
            raise ValueError(msg)
        layer.ref = self.resolve(layer.ref)
        with self.batch():
            self._layers[layer.layer_id] = layer
            self._dirty_connections.update(layer.connections)
            self._touch(layer.ref)
        return self._compose(layer.ref)

    def remove_layer(self, layer_id: str) -> bool:
        """Discard a provisional effect, leaving every other layer in place."""
        layer = self._layers.pop(layer_id, None)
        if layer is None:
            return False
        with self.batch():
            self._dirty_connections.update(layer.connections)
            self._touch(layer.ref)
        return True

    def confirm_layer(self, layer_id: str, entity: Entity | None, *, deleted: bool = False) -> None:
        """Replace a provisional effect with the authoritative result.

        For creates the provisional entity is swapped for ``entity`` and its
        subscribers are relocated to the real id. For deletes the entity is
        evicted. All of it is published as one batch.
        """
        with self.batch():
            layer = self._layers.pop(layer_id, None)
            if layer is not None:
                self._dirty_connections.update(layer.connections)
                self._touch(layer.ref)

            if deleted:
                if layer is not None:
                    self.evict(layer.ref.type, layer.ref.id)
                elif entity is not None:
                    self.evict(entity.type, entity.id)
                return
            if entity is None:
                return

            self.write(entity)
            if layer is None:
                return
            for key in layer.connections:
                record = self._connections.setdefault(key, ConnectionRecord())
                if entity.ref not in record.refs and layer.ref not in record.refs:
                    record.refs.append(entity.ref)
            if layer.ref != entity.ref:
                self.relocate(entity.type, layer.ref.id, entity.id)

    # ──────────────────────────────────────────────────────────────
    # Subscriptions
    # ──────────────────────────────────────────────────────────────

    def subscribe(self, entity_type: EntityType | str, entity_id: str) -> CacheSubscription:
        """Stream of the entity's composed state after every change."""
        ref = self.resolve(EntityRef(EntityType(entity_type), entity_id))
        subscription = CacheSubscription(self, ref)
        self._subscribers[ref].add(subscription)
        return subscription

    def subscribe_connection(self, key: str) -> CacheSubscription:
        """Stream of a connection's entities after membership or member changes."""
        subscription = CacheSubscription(self, key)
        self._connection_subscribers[key].add(subscription)
        return subscription

    def _unsubscribe(self, subscription: CacheSubscription) -> None:
        target = subscription.target
        registry: dict[Any, set[CacheSubscription]] = (
            self._connection_subscribers if isinstance(target, str) else self._subscribers
        )
        subscribers = registry.get(target)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del registry[target]

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Coalesce notifications until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._flush()

    def _touch(self, ref: EntityRef) -> None:
        self._dirty_refs.add(self.resolve(ref))
        if self._batch_depth == 0:
            self._flush()

    def _flush(self) -> None:
        refs, self._dirty_refs = {self.resolve(r) for r in self._dirty_refs}, set()
        keys, self._dirty_connections = self._dirty_connections, set()

        for key, subscribers in list(self._connection_subscribers.items()):
            if key in keys or refs.intersection(self._connection_refs(key)):
                entities = self.read_connection(key)
                for subscription in list(subscribers):
                    subscription._push(entities)

        for ref in refs:
            subscribers = self._subscribers.get(ref)
            if not subscribers:
                continue
            value = self._compose(ref)
            for subscription in list(subscribers):
                subscription._push(value)

    # ──────────────────────────────────────────────────────────────
    # Composition
    # ──────────────────────────────────────────────────────────────

    def _compose(self, ref: EntityRef) -> Entity | None:
        entity = self._entities.get(ref)
        removed = False
        for layer in self._layers.values():
            if layer.ref != ref or removed:
                continue
            if layer.removed:
                entity, removed = None, True
            elif entity is None:
                entity = Entity(type=ref.type, id=ref.id, fields=dict(layer.fields), pending=True)
            else:
                entity = entity.merged(layer.fields, pending=True)
        return entity

    def _connection_refs(self, key: str) -> list[EntityRef]:
        record = self._connections.get(key)
        refs = list(record.refs) if record else []
        for layer in self._layers.values():
            if key in layer.connections and layer.ref not in refs:
                refs.append(layer.ref)
        return refs


def _is_stale(existing: Entity, incoming: Entity) -> bool:
    current, candidate = existing.get("version"), incoming.get("version")
    return isinstance(current, int) and isinstance(candidate, int) and candidate < current


__all__ = [
    "CacheSubscription",
    "ConnectionRecord",
    "NormalizedCache",
    "OptimisticLayer",
]
