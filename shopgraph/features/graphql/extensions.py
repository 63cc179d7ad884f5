"""Strawberry extensions for the GraphQL schema.

Provides:
- Query depth limiting (GRAPHQL_MAX_QUERY_DEPTH)
- Stable error codes in ``errors[].extensions`` and masking of internal errors
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from strawberry.extensions import QueryDepthLimiter, SchemaExtension

from shopgraph.core.exceptions import AppException
from shopgraph.core.settings import get_app_settings, get_graphql_settings

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorCodeExtension(SchemaExtension):
    """Attach ``extensions.code`` to every resolver error.

    Application errors keep their message and carry their code and extra
    fields. Anything else is logged with its traceback and reported as
    INTERNAL_ERROR; in production its message is replaced.
    """

    def on_execute(self) -> Iterator[None]:
        yield
        result = self.execution_context.result
        if result is None or not result.errors:
            return

        masked = get_app_settings().environment == "production"
        for error in result.errors:
            original = error.original_error
            if original is None:
                continue
            if isinstance(original, AppException):
                error.extensions = {**(error.extensions or {}), **original.extensions}
                logger.info(
                    "GraphQL operation failed",
                    extra={
                        "code": original.code,
                        "path": error.path,
                        "operation_name": self.execution_context.operation_name,
                    },
                )
                continue
            logger.error(
                "Unhandled error in GraphQL resolver",
                exc_info=original,
                extra={"path": error.path, "operation_name": self.execution_context.operation_name},
            )
            error.extensions = {**(error.extensions or {}), "code": INTERNAL_ERROR}
            if masked:
                error.message = "An internal error occurred. Please try again later."


def get_extensions() -> list:
    """Get list of Strawberry extensions for the schema."""
    settings = get_graphql_settings()
    extensions = [
        # Limit query depth to prevent abuse
        QueryDepthLimiter(max_depth=settings.max_query_depth),
        ErrorCodeExtension,
    ]

    logger.debug(f"GraphQL extensions configured: depth limit={settings.max_query_depth}")
    return extensions


__all__ = ["INTERNAL_ERROR", "ErrorCodeExtension", "get_extensions"]
