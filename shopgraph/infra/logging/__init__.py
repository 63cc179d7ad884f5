"""Structured logging for the API, the client and the CLI.

Records are JSON Lines by default and carry the current log context
(correlation_id, subject, invocation_id) plus the active OpenTelemetry span:

    from shopgraph.infra.logging import get_lazy_logger, set_log_context

    logger = get_lazy_logger(__name__)
    set_log_context(correlation_id=request_id)
    logger.debug(lambda: f"cache: {cache.dump()}")
"""

from shopgraph.infra.logging.config import configure_logging, setup_logging, shutdown
from shopgraph.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)
from shopgraph.infra.logging.formatters import JSONFormatter
from shopgraph.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
