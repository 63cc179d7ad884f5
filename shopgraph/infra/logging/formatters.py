"""JSON Lines rendering of log records."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord has; anything else on a record came from extra= or the context filter
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Output starts with ``timestamp`` (UTC, milliseconds), ``level``,
    ``logger`` and ``message``, followed by the static fields, the active
    OpenTelemetry ``trace_id``/``span_id`` and any extra attributes::

        {"timestamp": "2025-01-15T10:30:00.123Z", "level": "INFO",
         "logger": "shopgraph.client.reconciler", "message": "Mutation confirmed",
         "service": "shopgraph", "invocation_id": "..."}

    Tracebacks are escaped so a record never spans lines. Values json cannot
    encode are written with ``str()``.
    """

    def __init__(self, static: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.static = dict(static or {})

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.static,
        }

        context = trace.get_current_span().get_span_context()
        if context.is_valid:
            data["trace_id"] = format(context.trace_id, "032x")
            data["span_id"] = format(context.span_id, "016x")

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        for key, value in vars(record).items():
            if key not in _RESERVED and key not in data:
                data[key] = value

        return json.dumps(data, ensure_ascii=False, default=str)
