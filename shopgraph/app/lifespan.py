"""Startup and shutdown of the API process.

Logging comes up first so the remaining steps are logged; the database
engine is disposed on the way out. The event broker is process-local and
starts empty.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from shopgraph.core.settings import get_app_settings, get_logging_settings
from shopgraph.infra.database.session import close_database, init_database
from shopgraph.infra.events import reset_event_broker
from shopgraph.infra.logging.config import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_app_settings()
    service = {"service": settings.service_name, "environment": settings.environment}

    setup_logging(get_logging_settings(), force=True)
    logger.info("Application starting", extra=service)

    await init_database()
    reset_event_broker()

    logger.info("Serving %s on %s:%s", app.title, settings.host, settings.port, extra=service)
    try:
        yield
    finally:
        logger.info("Application shutting down", extra=service)
        await close_database()


__all__ = ["lifespan"]
