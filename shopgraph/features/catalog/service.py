"""Catalog service: connection queries and authorized, idempotent mutations."""

from __future__ import annotations

import hashlib
import json
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from shopgraph.core.acl import Authorizer, get_authorizer, require_authorized
from shopgraph.core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    ValidationException,
    jsonable_errors,
)
from shopgraph.core.pagination import (
    ConnectionResolver,
    CursorCodec,
    FilterCondition,
    SortField,
    SqlAlchemySource,
    build_scope,
    get_cursor_codec,
)
from shopgraph.core.schemas.entity import EntityType
from shopgraph.core.services.base import BaseService
from shopgraph.core.settings import PaginationSettings, get_pagination_settings
from shopgraph.features.catalog.models import MODELS
from shopgraph.features.catalog.repository import (
    get_catalog_repository,
    get_receipt_repository,
)
from shopgraph.features.catalog.schemas import (
    CatalogInput,
    CustomerCreate,
    CustomerUpdate,
    EntityDelete,
    OrderCreate,
    OrderUpdate,
    ProductCreate,
    ProductUpdate,
    TargetInput,
    order_total,
)
from shopgraph.infra.events import EntityEvent, EntityEventType, EventBroker, get_event_broker

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from shopgraph.core.pagination import Connection
    from shopgraph.core.schemas.auth import Identity
    from shopgraph.core.schemas.entity import Entity


MutationAction = Literal["create", "update", "delete"]


@dataclass(frozen=True, slots=True)
class MutationSpec:
    """Binds a mutation name to its entity type, action and input schema."""

    operation: str
    entity_type: EntityType
    action: MutationAction
    input_model: type[CatalogInput]

    def __post_init__(self) -> None:
        # updates and deletes address an existing row, creates never do
        if (self.action == "create") == issubclass(self.input_model, TargetInput):
            msg = f"{self.operation}: {self.action} mutations need a matching input model"
            raise ValueError(msg)

    @property
    def event_type(self) -> EntityEventType:
        return {
            "create": EntityEventType.CREATED,
            "update": EntityEventType.UPDATED,
            "delete": EntityEventType.DELETED,
        }[self.action]


MUTATIONS: dict[str, MutationSpec] = {
    spec.operation: spec
    for spec in (
        MutationSpec("createProduct", EntityType.PRODUCT, "create", ProductCreate),
        MutationSpec("updateProduct", EntityType.PRODUCT, "update", ProductUpdate),
        MutationSpec("deleteProduct", EntityType.PRODUCT, "delete", EntityDelete),
        MutationSpec("createCustomer", EntityType.CUSTOMER, "create", CustomerCreate),
        MutationSpec("updateCustomer", EntityType.CUSTOMER, "update", CustomerUpdate),
        MutationSpec("deleteCustomer", EntityType.CUSTOMER, "delete", EntityDelete),
        MutationSpec("createOrder", EntityType.ORDER, "create", OrderCreate),
        MutationSpec("updateOrder", EntityType.ORDER, "update", OrderUpdate),
        MutationSpec("deleteOrder", EntityType.ORDER, "delete", EntityDelete),
    )
}


def input_hash(operation: str, payload: CatalogInput) -> str:
    """Stable digest of a mutation request, used to detect idempotency key reuse."""
    body = json.dumps(
        {"op": operation, "input": payload.model_dump(mode="json")},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(body.encode()).hexdigest()


class CatalogService(BaseService):
    """Orchestrates catalog reads and writes for one request session.

    Mutations are authorized before anything is validated or written. Writes
    to one entity are serialized, checked against ``expectedVersion`` and
    committed before the change event is published. A repeated idempotency
    key replays the stored result instead of writing again.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        authorizer: Authorizer | None = None,
        broker: EventBroker | None = None,
        codec: CursorCodec | None = None,
        pagination: PaginationSettings | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._authorizer = authorizer or get_authorizer()
        self._broker = broker or get_event_broker()
        self._codec = codec or get_cursor_codec()
        self._pagination = pagination or get_pagination_settings()
        self._receipts = get_receipt_repository()

    # ──────────────────────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────────────────────

    async def get(self, entity_type: EntityType, entity_id: str) -> Entity | None:
        """Fetch one entity without raising if it is missing."""
        instance = await get_catalog_repository(entity_type).get(self._session, entity_id)
        return instance.to_entity() if instance is not None else None

    async def connection(
        self,
        entity_type: EntityType,
        *,
        conditions: Iterable[FilterCondition | Mapping[str, Any]] = (),
        sort: Iterable[SortField | tuple[str, str]] | None = None,
        first: int | None = None,
        after: str | None = None,
        last: int | None = None,
        before: str | None = None,
        include_total: bool = False,
    ) -> Connection[Entity]:
        """Resolve one page of a filtered, sorted entity connection.

        Raises:
            InvalidArgumentError: On bad filter, sort or page arguments.
            InvalidCursorError: If a cursor was issued for another scope.
        """
        scope = build_scope(
            entity_type,
            conditions=conditions,
            sort=sort,
            tie_break=self._pagination.tie_break_field,
        )
        resolver = ConnectionResolver(
            SqlAlchemySource(self._session, MODELS[entity_type]),
            self._codec,
            default_page_size=self._pagination.default_page_size,
            max_page_size=self._pagination.max_page_size,
        )
        return await resolver.resolve(
            scope,
            first=first,
            after=after,
            last=last,
            before=before,
            include_total=include_total,
        )

    # ──────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────

    async def mutate(
        self,
        name: str,
        input: Mapping[str, Any],  # noqa: A002
        identity: Identity,
        *,
        idempotency_key: str | None = None,
    ) -> Entity:
        """Run the named mutation and return the resulting entity.

        For deletes the entity is the last state before removal.

        Raises:
            InvalidArgumentError: Unknown mutation name.
            AuthorizationError: The identity may not run this mutation.
            ValidationException: The input failed validation.
            NotFoundException: The target entity does not exist.
            ConflictError: Stale ``expected_version``, unique constraint
                violation, or an idempotency key reused for a different request.
        """
        spec = MUTATIONS.get(name)
        if spec is None:
            raise InvalidArgumentError(
                detail=f"Unknown mutation {name!r}",
                extra={"operation": name},
            )
        require_authorized(self._authorizer, name, identity)
        payload = self._validate(spec, input)

        async with AsyncExitStack() as stack:
            if idempotency_key is not None:
                await stack.enter_async_context(self._receipts.key_lock(identity.subject, idempotency_key))
                replayed = await self._replay(spec, payload, identity, idempotency_key)
                if replayed is not None:
                    return replayed
            if isinstance(payload, TargetInput):
                repository = get_catalog_repository(spec.entity_type)
                await stack.enter_async_context(repository.write_lock(payload.id))

            try:
                entity = await self._execute(spec, payload)
                if idempotency_key is not None:
                    await self._receipts.record(
                        self._session,
                        idempotency_key=idempotency_key,
                        operation=name,
                        subject=identity.subject,
                        input_hash=input_hash(name, payload),
                        entity=entity,
                    )
                await self._session.commit()
            except IntegrityError as e:
                await self._session.rollback()
                raise ConflictError(
                    detail=f"{spec.entity_type} violates a uniqueness or reference constraint",
                    extra={"operation": name},
                ) from e
            except Exception:
                await self._session.rollback()
                raise

        self.logger.info(
            "Catalog mutation committed",
            extra={
                "operation": name,
                "entity_type": str(spec.entity_type),
                "entity_id": entity.id,
                "subject": identity.subject,
                "idempotency_key": idempotency_key,
            },
        )
        await self._broker.publish(EntityEvent(spec.event_type, entity))
        return entity

    def _validate(self, spec: MutationSpec, input: Mapping[str, Any]) -> CatalogInput:  # noqa: A002
        try:
            return spec.input_model.model_validate(dict(input))
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False)
            self._lazy.debug(lambda: f"service.mutate({spec.operation}) invalid input: {errors}")
            raise ValidationException(
                detail=f"Invalid input for {spec.operation}",
                extra={"errors": jsonable_errors(errors)},
            ) from e

    async def _replay(
        self,
        spec: MutationSpec,
        payload: CatalogInput,
        identity: Identity,
        idempotency_key: str,
    ) -> Entity | None:
        receipt = await self._receipts.find(self._session, identity.subject, idempotency_key)
        if receipt is None:
            return None
        if receipt.operation != spec.operation or receipt.input_hash != input_hash(
            spec.operation, payload
        ):
            raise ConflictError(
                detail="Idempotency key was already used for a different request",
                extra={"idempotency_key": idempotency_key, "operation": receipt.operation},
            )
        self.logger.info(
            "Replayed idempotent mutation",
            extra={"operation": spec.operation, "idempotency_key": idempotency_key},
        )
        return self._receipts.replay(receipt)

    async def _execute(self, spec: MutationSpec, payload: CatalogInput) -> Entity:
        repository = get_catalog_repository(spec.entity_type)

        if not isinstance(payload, TargetInput):
            values = await self._column_values(payload, payload.model_dump())
            instance = await repository.create(self._session, repository.model(**values))
            return instance.to_entity()

        instance = await repository.get_for_write(
            self._session, payload.id, payload.expected_version
        )
        if spec.action == "delete":
            snapshot = instance.to_entity()
            await repository.delete(self._session, instance)
            return snapshot

        table = repository.model.__table__
        changes = {
            key: value
            for key, value in payload.model_dump(
                exclude_unset=True, exclude={"id", "expected_version"}
            ).items()
            if value is not None or table.c[key].nullable
        }
        values = await self._column_values(payload, changes)
        instance = await repository.apply_changes(self._session, instance, values)
        return instance.to_entity()

    async def _column_values(self, payload: CatalogInput, values: dict[str, Any]) -> dict[str, Any]:
        """Translate validated input into column values."""
        if isinstance(payload, OrderCreate):
            await get_catalog_repository(EntityType.CUSTOMER).get_or_raise(
                self._session, payload.customer_id
            )
        if isinstance(payload, (OrderCreate, OrderUpdate)) and payload.items is not None:
            values["items"] = [line.model_dump(mode="json") for line in payload.items]
            values["total"] = order_total(payload.items)
        return values


__all__ = ["MUTATIONS", "CatalogService", "MutationSpec", "input_hash"]
