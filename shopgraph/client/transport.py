"""Transports that carry catalog operations to the GraphQL API.

Both transports speak the same documents and map GraphQL errors back to
application exceptions through ``extensions.code``:

- :class:`GraphQLHttpTransport` posts to a remote endpoint with httpx
- :class:`SchemaTransport` executes against an in-process schema (tests, tooling)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx

from shopgraph.client.documents import (
    connection_document,
    entity_from_payload,
    mutation_document,
    node_document,
    page_from_payload,
    to_variables,
)
from shopgraph.core.exceptions import (
    AppException,
    MutationTimeoutError,
    TransportError,
    exception_for_code,
)
from shopgraph.core.schemas.auth import Identity
from shopgraph.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from strawberry import Schema

    from shopgraph.client.reconciler import MutationRequest
    from shopgraph.core.pagination import PageInfo
    from shopgraph.core.schemas.entity import Entity, EntityType

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


class GraphQLTransport(ABC):
    """Runs catalog documents and converts responses to entities."""

    @abstractmethod
    async def request(
        self,
        document: str,
        variables: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Execute one document and return the JSON response body."""

    async def execute(self, request: MutationRequest, invocation_id: str) -> Entity:
        """Send a mutation and return the authoritative entity."""
        variables = {
            "input": to_variables(self._mutation_input(request)),
            "idempotencyKey": request.idempotency_key,
        }
        data = await self._data(
            mutation_document(request.operation, request.entity_type),
            variables,
            correlation_id=invocation_id,
        )
        return entity_from_payload(request.entity_type, data["result"])

    async def fetch_node(self, entity_type: EntityType, entity_id: str) -> Entity | None:
        data = await self._data(node_document(entity_type), {"id": entity_id})
        payload = data.get("result")
        return entity_from_payload(entity_type, payload) if payload is not None else None

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
        """Fetch one connection page."""
        variables = {
            "filter": [
                {
                    "field": c["field"],
                    "op": str(c.get("op", "eq")).upper(),
                    "value": to_variables(c.get("value")),
                }
                for c in conditions
            ]
            or None,
            "sort": [{"field": f, "direction": d.upper()} for f, d in sort] if sort else None,
            "first": first,
            "after": after,
            "last": last,
            "before": before,
            "includeTotal": include_total,
        }
        data = await self._data(connection_document(entity_type), variables)
        return page_from_payload(entity_type, data["result"])

    async def aclose(self) -> None:
        return None

    async def _data(
        self,
        document: str,
        variables: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        body = await self.request(document, variables, correlation_id=correlation_id)
        errors = body.get("errors")
        if errors:
            raise _error_from_payload(errors[0])
        data = body.get("data")
        if not isinstance(data, dict):
            raise TransportError("Response carried neither data nor errors")
        return data

    @staticmethod
    def _mutation_input(request: MutationRequest) -> dict[str, Any]:
        payload = dict(request.input)
        if request.target_id is not None:
            payload.setdefault("id", request.target_id)
        return payload


class GraphQLHttpTransport(GraphQLTransport):
    """POSTs documents to a GraphQL endpoint.

    Handles:
    - Bearer token authentication
    - Correlation ids (``X-Correlation-ID``) per mutation invocation
    - Timeout and HTTP error mapping to :class:`TransportError`
    """

    def __init__(
        self,
        endpoint: str,
        *,
        token: str | None = None,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint: GraphQL endpoint URL
            token: Bearer token sent with every request
            timeout_seconds: HTTP request timeout
            client: Pre-configured client; created on first use otherwise
        """
        self.endpoint = endpoint
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def request(
        self,
        document: str,
        variables: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "shopgraph-client/1.0",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        lazy_logger.debug(lambda: f"client.request: url={self.endpoint}, correlation_id={correlation_id}")

        try:
            response = await self._get_client().post(
                self.endpoint,
                json={"query": document, "variables": variables},
                headers=headers,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "GraphQL request timeout",
                extra={
                    "endpoint": self.endpoint,
                    "timeout_seconds": self.timeout_seconds,
                    "operation": "client.request",
                },
            )
            raise MutationTimeoutError(self.timeout_seconds) from e
        except httpx.HTTPError as e:
            logger.warning(
                "GraphQL request failed",
                extra={"endpoint": self.endpoint, "error": str(e), "operation": "client.request"},
            )
            raise TransportError(f"Request to {self.endpoint} failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Non-JSON response (HTTP {response.status_code})",
                extra={"status_code": response.status_code},
            ) from e

        # GraphQL errors may arrive with a non-2xx status
        if not isinstance(body, dict) or ("data" not in body and "errors" not in body):
            raise TransportError(
                f"Unexpected response (HTTP {response.status_code})",
                extra={"status_code": response.status_code},
            )
        if response.status_code >= 400 and not body.get("errors"):
            raise TransportError(
                f"HTTP {response.status_code}",
                extra={"status_code": response.status_code},
            )
        return body

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GraphQLHttpTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


class SchemaTransport(GraphQLTransport):
    """Executes documents directly against a Strawberry schema.

    Each request opens its own session from ``session_factory`` so the
    transport behaves like independent HTTP requests.
    """

    def __init__(
        self,
        schema: Schema,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        identity: Identity | None = None,
    ) -> None:
        self.schema = schema
        self.session_factory = session_factory
        self.identity = identity or Identity.anonymous()

    async def request(
        self,
        document: str,
        variables: dict[str, Any],
        *,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        from shopgraph.features.graphql.context import GraphQLContext

        async with self.session_factory() as session:
            result = await self.schema.execute(
                document,
                variable_values=variables,
                context_value=GraphQLContext(
                    session=session,
                    identity=self.identity,
                    correlation_id=correlation_id,
                ),
            )
        body: dict[str, Any] = {"data": result.data}
        if result.errors:
            body["errors"] = [error.formatted for error in result.errors]
        return body


def _error_from_payload(error: Mapping[str, Any]) -> AppException:
    extensions = dict(error.get("extensions") or {})
    code = extensions.pop("code", None)
    return exception_for_code(code, str(error.get("message") or "GraphQL error"), extensions)


__all__ = ["GraphQLHttpTransport", "GraphQLTransport", "SchemaTransport"]
