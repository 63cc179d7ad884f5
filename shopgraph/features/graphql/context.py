"""Per-request GraphQL context (strawberry ``context_getter``)."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING

from strawberry.fastapi import BaseContext

from shopgraph.core.schemas.auth import Identity
from shopgraph.features.catalog.service import CatalogService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from starlette.background import BackgroundTasks
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.websockets import WebSocket


@dataclass
class GraphQLContext(BaseContext):
    """Session, caller and catalog service for one operation.

    ``identity`` is anonymous (no roles) when the request carried no bearer
    token. Tests build the context directly with a session and an identity
    and run ``schema.execute`` without HTTP.
    """

    request: Request | WebSocket | None = None
    response: Response | None = None
    background_tasks: BackgroundTasks | None = None

    session: AsyncSession = field(default=None)  # type: ignore[assignment]
    identity: Identity = field(default_factory=Identity.anonymous)
    correlation_id: str | None = None

    @cached_property
    def catalog(self) -> CatalogService:
        return CatalogService(self.session)


__all__ = ["GraphQLContext"]
