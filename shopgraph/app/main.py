"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from shopgraph.app.exception_handlers import configure_exception_handlers
from shopgraph.app.lifespan import lifespan
from shopgraph.app.router import setup_routers
from shopgraph.core.settings import get_app_settings, get_graphql_settings


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Settings are loaded once and cached via LRU cache.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    # Exception handlers before routers
    configure_exception_handlers(app)

    if app_settings.cors_origins:
        from fastapi.middleware.cors import CORSMiddleware

        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
        )

    setup_routers(app, get_graphql_settings())
    return app


# Application instance for uvicorn
app = create_app()
