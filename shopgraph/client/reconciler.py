"""Optimistic mutation reconciler.

Every dispatched mutation gets an optimistic layer in the
:class:`~shopgraph.client.cache.NormalizedCache` right away and a
:class:`PendingMutation` handle for the caller. When the server answers,
the layer is either confirmed (provisional ids are relocated to the real
ones) or rolled back. Only that mutation's own layer is touched, so
confirmations can arrive in any order.

State machine:
    PENDING -> CONFIRMED   authoritative entity received
    PENDING -> FAILED      server error, transport error or timeout

Resolution notifications are delivered at least once; duplicates for an
invocation that is no longer pending are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol
from uuid import uuid4

from shopgraph.client.cache import OptimisticLayer
from shopgraph.core.acl import require_authorized
from shopgraph.core.exceptions import (
    AppException,
    DuplicateMutationError,
    MutationTimeoutError,
    TransportError,
)
from shopgraph.core.schemas.auth import Identity
from shopgraph.core.schemas.entity import Entity, EntityRef, EntityType
from shopgraph.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from shopgraph.client.cache import NormalizedCache
    from shopgraph.core.acl import Authorizer

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


class MutationKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class MutationState(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class MutationRequest:
    """A mutation as the client dispatches it.

    Attributes:
        operation: GraphQL mutation field, e.g. ``createProduct``.
        entity_type: Type of the entity the mutation writes.
        kind: Create, update or delete.
        input: Snake-case input fields sent to the server.
        target_id: Entity id for updates and deletes.
        idempotency_key: Caller-chosen key; at most one pending mutation per key.
        connections: Cache keys of connections a created entity should join.
        optimistic_fields: Fields shown before confirmation; defaults to ``input``.
    """

    operation: str
    entity_type: EntityType
    kind: MutationKind
    input: dict[str, Any] = field(default_factory=dict)
    target_id: str | None = None
    idempotency_key: str | None = None
    connections: tuple[str, ...] = ()
    optimistic_fields: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.kind is not MutationKind.CREATE and not self.target_id:
            msg = f"{self.kind} mutations require a target_id"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Confirmed:
    entity: Entity


@dataclass(frozen=True, slots=True)
class Failed:
    error: AppException


MutationOutcome = Confirmed | Failed


class MutationTransport(Protocol):
    """Sends a mutation to the API and returns the authoritative entity.

    Implementations raise :class:`AppException` subclasses for every failure.
    """

    async def execute(self, request: MutationRequest, invocation_id: str) -> Entity: ...


class PendingMutation:
    """Caller's handle on one dispatched mutation.

    Awaiting the handle yields the :class:`Confirmed` or :class:`Failed`
    outcome. :meth:`cancel` only stops that local notification; the
    mutation itself still reconciles.
    """

    def __init__(
        self,
        invocation_id: str,
        request: MutationRequest,
        provisional_ref: EntityRef,
    ) -> None:
        self.invocation_id = invocation_id
        self.request = request
        self.provisional_ref = provisional_ref
        self.state = MutationState.PENDING
        self.outcome: MutationOutcome | None = None
        self._future: asyncio.Future[MutationOutcome] = asyncio.get_running_loop().create_future()
        self._cancelled = False

    @property
    def provisional_id(self) -> str:
        return self.provisional_ref.id

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self.state is not MutationState.PENDING

    def cancel(self) -> bool:
        """Stop notifying the caller. Returns False when already resolved."""
        if self.done() or self._cancelled:
            return False
        self._cancelled = True
        self._future.cancel()
        return True

    async def result(self) -> MutationOutcome:
        return await self._future

    def __await__(self) -> Generator[Any, None, MutationOutcome]:
        return self._future.__await__()

    def _resolve(self, outcome: MutationOutcome) -> None:
        self.outcome = outcome
        self.state = (
            MutationState.CONFIRMED if isinstance(outcome, Confirmed) else MutationState.FAILED
        )
        if not self._future.done():
            self._future.set_result(outcome)

    def __repr__(self) -> str:
        return (
            f"PendingMutation(invocation_id={self.invocation_id!r}, "
            f"operation={self.request.operation!r}, state={self.state.value!r})"
        )


class MutationReconciler:
    """Applies optimistic effects and reconciles them with server outcomes.

    Example:
        reconciler = MutationReconciler(cache, transport, timeout=5.0)
        pending = reconciler.dispatch(
            MutationRequest("createProduct", EntityType.PRODUCT, MutationKind.CREATE,
                            input={"name": "Pen", "sku": "PEN-1", "price": "1.50"},
                            idempotency_key="k1")
        )
        cache.read(EntityType.PRODUCT, pending.provisional_id)  # pending entity
        outcome = await pending
    """

    def __init__(
        self,
        cache: NormalizedCache,
        transport: MutationTransport,
        *,
        timeout: float = 10.0,
        provisional_prefix: str = "tmp:",
        authorizer: Authorizer | None = None,
        identity: Identity | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.cache = cache
        self.transport = transport
        self.timeout = timeout
        self.provisional_prefix = provisional_prefix
        self.authorizer = authorizer
        self.identity = identity or Identity.anonymous()
        self._new_id = id_factory or (lambda: uuid4().hex)
        self._pending: dict[str, PendingMutation] = {}
        self._by_key: dict[str, str] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> tuple[PendingMutation, ...]:
        return tuple(self._pending.values())

    def get(self, invocation_id: str) -> PendingMutation | None:
        return self._pending.get(invocation_id)

    def dispatch(self, request: MutationRequest) -> PendingMutation:
        """Apply the optimistic effect and send the mutation.

        Must be called from a running event loop. Nothing is applied when
        authorization or the idempotency check fails.

        Raises:
            AuthorizationError: The local authorization predicate denies the operation.
            DuplicateMutationError: A mutation with the same idempotency key is pending.
        """
        self._authorize(request.operation)
        key = request.idempotency_key
        if key is not None and key in self._by_key:
            raise DuplicateMutationError(key, extra={"operation": request.operation})

        invocation_id = self._new_id()
        if request.kind is MutationKind.CREATE:
            ref = EntityRef(request.entity_type, f"{self.provisional_prefix}{invocation_id}")
        else:
            ref = EntityRef(request.entity_type, request.target_id or "")
        pending = PendingMutation(invocation_id, request, ref)

        fields = request.input if request.optimistic_fields is None else request.optimistic_fields
        fields = {k: v for k, v in fields.items() if k not in {"id", "expected_version"}}
        self.cache.apply_layer(
            OptimisticLayer(
                layer_id=invocation_id,
                ref=ref,
                fields=fields,
                removed=request.kind is MutationKind.DELETE,
                connections=request.connections if request.kind is MutationKind.CREATE else (),
            )
        )
        self._pending[invocation_id] = pending
        if key is not None:
            self._by_key[key] = invocation_id

        task = asyncio.get_running_loop().create_task(
            self._send(pending), name=f"mutation:{invocation_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.debug(
            "Mutation dispatched",
            extra={
                "operation": request.operation,
                "invocation_id": invocation_id,
                "provisional_id": ref.id,
                "idempotency_key": key,
            },
        )
        return pending

    def resolve(self, invocation_id: str, outcome: MutationOutcome) -> bool:
        """Reconcile one mutation with its outcome.

        Safe to call more than once per invocation; only the first call for a
        pending invocation has any effect.

        Returns:
            True when the outcome was applied, False for duplicates and unknown ids.
        """
        pending = self._pending.pop(invocation_id, None)
        if pending is None:
            logger.debug("Ignored duplicate resolution", extra={"invocation_id": invocation_id})
            return False

        key = pending.request.idempotency_key
        if key is not None and self._by_key.get(key) == invocation_id:
            del self._by_key[key]

        if isinstance(outcome, Confirmed):
            self.cache.confirm_layer(
                invocation_id,
                outcome.entity,
                deleted=pending.request.kind is MutationKind.DELETE,
            )
            logger.info(
                "Mutation confirmed",
                extra={
                    "operation": pending.request.operation,
                    "invocation_id": invocation_id,
                    "entity_id": outcome.entity.id,
                },
            )
        else:
            self.cache.remove_layer(invocation_id)
            logger.warning(
                "Mutation failed, rolled back",
                extra={
                    "operation": pending.request.operation,
                    "invocation_id": invocation_id,
                    "error_code": outcome.error.code,
                    "error": outcome.error.detail,
                },
            )

        pending._resolve(outcome)
        return True

    async def drain(self) -> None:
        """Wait until every in-flight mutation has been resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _send(self, pending: PendingMutation) -> None:
        request = pending.request
        try:
            async with asyncio.timeout(self.timeout):
                entity = await self.transport.execute(request, pending.invocation_id)
        except TimeoutError:
            outcome: MutationOutcome = Failed(
                MutationTimeoutError(self.timeout, extra={"operation": request.operation})
            )
        except AppException as e:
            outcome = Failed(e)
        except Exception as e:
            logger.exception(
                "Unexpected transport failure",
                extra={"operation": request.operation, "invocation_id": pending.invocation_id},
            )
            outcome = Failed(TransportError(str(e) or type(e).__name__))
        else:
            outcome = Confirmed(entity)
            lazy_logger.debug(
                lambda: f"Mutation {pending.invocation_id} answered with {entity.ref}"
            )
        self.resolve(pending.invocation_id, outcome)

    def _authorize(self, operation: str) -> None:
        if self.authorizer is not None:
            require_authorized(self.authorizer, operation, self.identity)


__all__ = [
    "Confirmed",
    "Failed",
    "MutationKind",
    "MutationOutcome",
    "MutationReconciler",
    "MutationRequest",
    "MutationState",
    "MutationTransport",
    "PendingMutation",
]
