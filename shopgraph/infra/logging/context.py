"""Per-task log context.

The GraphQL router sets ``correlation_id`` and ``subject`` for a request and
the reconciler binds ``invocation_id`` to its own records. Values live in a
ContextVar, so concurrent requests and mutations never see each other's
fields.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_fields: ContextVar[dict[str, Any]] = ContextVar("shopgraph_log_fields", default={})


def set_log_context(**fields: Any) -> None:
    """Merge ``fields`` into the context of the running task."""
    _fields.set({**_fields.get(), **fields})


def get_log_context() -> dict[str, Any]:
    return dict(_fields.get())


def clear_log_context() -> None:
    _fields.set({})


class ContextInjectingFilter(logging.Filter):
    """Root-logger filter that stamps context fields onto records.

    Attributes already present on a record (explicit ``extra=``) win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name, value in _fields.get().items():
            if not hasattr(record, name):
                setattr(record, name, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Adapter carrying fixed fields, e.g. one per pending mutation::

        log = get_logger(__name__, invocation_id=invocation.id)
        log.bind(entity_type="Order").info("Optimistic layer applied")
    """

    def __init__(self, logger: logging.Logger, **fields: Any) -> None:
        super().__init__(logger, fields)

    def bind(self, **fields: Any) -> ContextBoundLogger:
        return ContextBoundLogger(self.logger, **{**self.extra, **fields})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str, **fields: Any) -> ContextBoundLogger:
    return ContextBoundLogger(logging.getLogger(name), **fields)
