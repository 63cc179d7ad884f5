"""Global exception handlers for FastAPI application.

GraphQL operations report errors inside the response body; these handlers
cover failures raised before the GraphQL layer runs, such as a bearer token
that fails verification.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shopgraph.core.exceptions import AppException

logger = logging.getLogger(__name__)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert application exceptions into RFC 7807 Problem Details responses."""
    logger.warning(
        "Application exception occurred",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )
    problem = exc.to_problem()
    problem.setdefault("instance", str(request.url))
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=problem,
        headers=headers,
        media_type="application/problem+json",
    )


def configure_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    logger.debug("Exception handlers configured")


__all__ = ["app_exception_handler", "configure_exception_handlers"]
