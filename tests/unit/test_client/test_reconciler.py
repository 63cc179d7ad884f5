"""Tests for optimistic mutation dispatch and reconciliation."""

from __future__ import annotations

import asyncio
import itertools
from decimal import Decimal

import pytest

from shopgraph.client.cache import NormalizedCache
from shopgraph.client.reconciler import (
    Confirmed,
    Failed,
    MutationKind,
    MutationReconciler,
    MutationRequest,
    MutationState,
)
from shopgraph.core.acl import RoleAuthorizer
from shopgraph.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DuplicateMutationError,
    MutationTimeoutError,
    TransportError,
)
from shopgraph.core.schemas.entity import Entity, EntityType

P = EntityType.PRODUCT


def product(id: str, **fields) -> Entity:  # noqa: A002
    return Entity(type=P, id=id, fields=fields)


class FakeTransport:
    """Transport whose answers are released by the test."""

    def __init__(self) -> None:
        self.calls: list[tuple[MutationRequest, str]] = []
        self._answers: dict[str, asyncio.Future[Entity]] = {}

    def _future(self, invocation_id: str) -> asyncio.Future[Entity]:
        if invocation_id not in self._answers:
            self._answers[invocation_id] = asyncio.get_running_loop().create_future()
        return self._answers[invocation_id]

    async def execute(self, request: MutationRequest, invocation_id: str) -> Entity:
        self.calls.append((request, invocation_id))
        return await self._future(invocation_id)

    def answer(self, invocation_id: str, entity: Entity) -> None:
        self._future(invocation_id).set_result(entity)

    def fail(self, invocation_id: str, error: Exception) -> None:
        future = self._future(invocation_id)
        if not future.done():
            future.set_exception(error)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def cache() -> NormalizedCache:
    cache = NormalizedCache()
    cache.write(product("p1", name="Pen", price=Decimal("1.50"), version=1))
    cache.store_connection("all", [product("p1")])
    return cache


@pytest.fixture
async def reconciler(cache, transport):
    """Reconciler with predictable invocation ids; unanswered mutations fail on teardown."""
    counter = itertools.count(1)
    reconciler = MutationReconciler(cache, transport, timeout=5.0, id_factory=lambda: f"inv{next(counter)}")
    yield reconciler
    for pending in reconciler.pending:
        transport.fail(pending.invocation_id, TransportError("test finished"))
    await reconciler.drain()


def create(name: str = "Cup", *, key: str | None = None) -> MutationRequest:
    return MutationRequest(
        operation="createProduct",
        entity_type=P,
        kind=MutationKind.CREATE,
        input={"name": name, "sku": f"SKU-{name}", "price": Decimal("4.00")},
        idempotency_key=key,
        connections=("all",),
    )


def update(entity_id: str = "p1", **fields) -> MutationRequest:
    return MutationRequest(
        operation="updateProduct",
        entity_type=P,
        kind=MutationKind.UPDATE,
        input={"id": entity_id, **fields},
        target_id=entity_id,
    )


# ──────────────────────────────────────────────────────────────
# Dispatch
# ──────────────────────────────────────────────────────────────


class TestDispatch:
    """Tests for the optimistic effect of dispatch."""

    @pytest.mark.asyncio
    async def test_create_is_visible_immediately(self, reconciler, cache):
        """The provisional entity is readable and in its connection before any answer."""
        pending = reconciler.dispatch(create())

        assert pending.provisional_id == "tmp:inv1"
        assert pending.state is MutationState.PENDING
        entity = cache.read(P, "tmp:inv1")
        assert entity.pending is True
        assert entity.get("name") == "Cup"
        assert [e.id for e in cache.read_connection("all")] == ["p1", "tmp:inv1"]

    @pytest.mark.asyncio
    async def test_each_create_gets_own_provisional_entity(self, reconciler, cache):
        """Without an idempotency key identical creates are not merged."""
        first = reconciler.dispatch(create())
        second = reconciler.dispatch(create())

        assert first.provisional_id != second.provisional_id
        assert len(cache.read_connection("all")) == 3

    @pytest.mark.asyncio
    async def test_update_strips_control_fields(self, reconciler, cache):
        """id and expected_version never land in the optimistic fields."""
        reconciler.dispatch(update(price=Decimal("2.00"), expected_version=1))

        entity = cache.read(P, "p1")
        assert entity.get("price") == Decimal("2.00")
        assert "expected_version" not in entity.fields
        assert "id" not in entity.fields

    @pytest.mark.asyncio
    async def test_delete_hides_entity(self, reconciler, cache):
        reconciler.dispatch(
            MutationRequest("deleteProduct", P, MutationKind.DELETE, {"id": "p1"}, target_id="p1")
        )

        assert cache.read(P, "p1") is None
        assert cache.read_connection("all") == []

    def test_update_requires_target(self):
        with pytest.raises(ValueError, match="target_id"):
            MutationRequest("updateProduct", P, MutationKind.UPDATE, {"name": "x"})

    @pytest.mark.asyncio
    async def test_authorization_denied_before_dispatch(self, cache, transport, viewer):
        """A denied operation raises and leaves the cache untouched."""
        reconciler = MutationReconciler(
            cache,
            transport,
            authorizer=RoleAuthorizer({"createProduct": ["admin"]}),
            identity=viewer,
        )
        before = cache.dump()

        with pytest.raises(AuthorizationError):
            reconciler.dispatch(create())

        await asyncio.sleep(0)
        assert cache.dump() == before
        assert transport.calls == []
        assert reconciler.pending == ()

    @pytest.mark.asyncio
    async def test_missing_identity_is_anonymous(self, cache, transport):
        """Without an identity the authorizer still runs, for the anonymous caller."""
        reconciler = MutationReconciler(cache, transport, authorizer=RoleAuthorizer({"createProduct": ["admin"]}))

        with pytest.raises(AuthorizationError):
            reconciler.dispatch(create())

        assert reconciler.identity.is_anonymous
        assert transport.calls == []


# ──────────────────────────────────────────────────────────────
# Idempotency keys
# ──────────────────────────────────────────────────────────────


class TestIdempotencyKey:
    """Tests for at most one pending mutation per key."""

    @pytest.mark.asyncio
    async def test_duplicate_key_while_pending(self, reconciler, transport, cache):
        """k1: a second dispatch is rejected while the first is pending, then allowed."""
        first = reconciler.dispatch(create(key="k1"))
        before_duplicate = cache.dump()

        with pytest.raises(DuplicateMutationError) as exc:
            reconciler.dispatch(create(key="k1"))

        assert exc.value.extra["idempotency_key"] == "k1"
        assert cache.dump() == before_duplicate

        await asyncio.sleep(0)
        transport.answer(first.invocation_id, product("p2", name="Cup", version=1))
        outcome = await first

        assert isinstance(outcome, Confirmed)
        assert outcome.entity.id == "p2"
        entities = cache.dump()["entities"]
        assert sorted(entities) == ["Product:p1", "Product:p2"]
        assert not any(key.startswith("Product:tmp:") for key in entities)
        assert cache.read_connection("all") == [cache.read(P, "p1"), cache.read(P, "p2")]
        assert cache.layer_ids == ()
        assert len(transport.calls) == 1

        again = reconciler.dispatch(create(key="k1"))
        assert again.state is MutationState.PENDING

    @pytest.mark.asyncio
    async def test_key_released_after_failure(self, reconciler, transport):
        first = reconciler.dispatch(create(key="k2"))
        await asyncio.sleep(0)
        transport.fail(first.invocation_id, ConflictError("taken"))
        await first

        assert reconciler.dispatch(create(key="k2")).state is MutationState.PENDING


# ──────────────────────────────────────────────────────────────
# Reconciliation
# ──────────────────────────────────────────────────────────────


class TestReconciliation:
    """Tests for confirmation, rollback and ordering."""

    @pytest.mark.asyncio
    async def test_confirm_relocates_for_every_subscriber(self, reconciler, transport, cache):
        """Subscribers of the provisional id all observe the real entity once."""
        pending = reconciler.dispatch(create())
        watchers = [cache.subscribe(P, pending.provisional_id) for _ in range(3)]
        page_watcher = cache.subscribe_connection("all")

        await asyncio.sleep(0)
        transport.answer(pending.invocation_id, product("p2", name="Cup", price=Decimal("4.00"), version=1))
        outcome = await pending

        assert outcome == Confirmed(product("p2", name="Cup", price=Decimal("4.00"), version=1))
        assert pending.state is MutationState.CONFIRMED
        for watcher in watchers:
            assert [(e.id, e.pending) for e in watcher.drain()] == [("p2", False)]
        assert [[e.id for e in page] for page in page_watcher.drain()] == [["p1", "p2"]]
        assert cache.read(P, pending.provisional_id).id == "p2"

    @pytest.mark.asyncio
    async def test_failure_restores_prior_state(self, reconciler, transport, cache):
        """A failed create leaves no trace in the cache."""
        before = cache.dump()
        pending = reconciler.dispatch(create())

        await asyncio.sleep(0)
        transport.fail(pending.invocation_id, ConflictError("duplicate sku"))
        outcome = await pending

        assert isinstance(outcome, Failed)
        assert outcome.error.code == "CONFLICT"
        assert pending.state is MutationState.FAILED
        assert cache.dump() == before

    @pytest.mark.asyncio
    async def test_out_of_order_confirmations(self, reconciler, transport, cache):
        """Confirmations arriving in reverse order converge on the server state."""
        a = reconciler.dispatch(update(price=Decimal("2.00")))
        b = reconciler.dispatch(update(name="Quill"))
        await asyncio.sleep(0)

        transport.answer(b.invocation_id, product("p1", name="Quill", price=Decimal("1.50"), version=2))
        await b
        interim = cache.read(P, "p1")
        assert interim.get("name") == "Quill"
        assert interim.get("price") == Decimal("2.00")
        assert interim.pending is True

        transport.answer(a.invocation_id, product("p1", name="Quill", price=Decimal("2.00"), version=3))
        await a
        final = cache.read(P, "p1")
        assert final.get("price") == Decimal("2.00")
        assert final.pending is False

    @pytest.mark.asyncio
    async def test_rollback_only_removes_own_layer(self, reconciler, transport, cache):
        """Failing the earlier mutation keeps the later one's provisional state."""
        a = reconciler.dispatch(update(price=Decimal("2.00")))
        b = reconciler.dispatch(update(price=Decimal("3.00"), name="Quill"))
        await asyncio.sleep(0)

        transport.fail(a.invocation_id, ConflictError("stale"))
        await a

        entity = cache.read(P, "p1")
        assert entity.get("price") == Decimal("3.00")
        assert entity.get("name") == "Quill"
        assert reconciler.get(b.invocation_id) is b

    @pytest.mark.asyncio
    async def test_timeout_fails_and_rolls_back(self, cache, transport):
        """A mutation that never answers fails with MutationTimeoutError."""
        reconciler = MutationReconciler(cache, transport, timeout=0.01)
        before = cache.dump()

        outcome = await reconciler.dispatch(create())

        assert isinstance(outcome, Failed)
        assert isinstance(outcome.error, MutationTimeoutError)
        assert cache.dump() == before

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_transport_error(self, reconciler, transport):
        pending = reconciler.dispatch(create())
        await asyncio.sleep(0)

        transport.fail(pending.invocation_id, RuntimeError("socket closed"))
        outcome = await pending

        assert type(outcome.error) is TransportError
        assert "socket closed" in outcome.error.detail

    @pytest.mark.asyncio
    async def test_duplicate_resolution_ignored(self, reconciler, transport, cache):
        """Only the first resolution of an invocation has an effect."""
        pending = reconciler.dispatch(create())
        confirmed = Confirmed(product("p2", name="Cup", version=1))

        assert reconciler.resolve(pending.invocation_id, confirmed) is True
        assert reconciler.resolve(pending.invocation_id, Failed(ConflictError("late"))) is False

        transport.answer(pending.invocation_id, product("p3", name="Other", version=1))
        await reconciler.drain()

        assert pending.outcome == confirmed
        assert cache.read(P, "p3") is None
        assert [e.id for e in cache.read_connection("all")] == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_resolve_unknown_invocation(self, reconciler):
        assert reconciler.resolve("never-dispatched", Failed(ConflictError("x"))) is False

    @pytest.mark.asyncio
    async def test_cancel_only_stops_notification(self, reconciler, transport, cache):
        """A cancelled handle raises on await but the cache still reconciles."""
        pending = reconciler.dispatch(create())

        assert pending.cancel() is True
        with pytest.raises(asyncio.CancelledError):
            await pending

        transport.answer(pending.invocation_id, product("p2", name="Cup", version=1))
        await reconciler.drain()

        assert pending.cancelled
        assert pending.state is MutationState.CONFIRMED
        assert cache.read(P, "p2").pending is False
        assert pending.cancel() is False
