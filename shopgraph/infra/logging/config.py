"""Root logger setup.

Every handler hangs off a single QueueListener thread; the root logger only
holds a QueueHandler, so logging from the event loop never blocks on I/O.
Child loggers propagate to the root and are not configured individually.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import SimpleQueue
from typing import TYPE_CHECKING, Any

from shopgraph.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from shopgraph.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

_listener: QueueListener | None = None
_queue_handler: QueueHandler | None = None
_configured = False


def shutdown() -> None:
    """Stop the listener thread after it has drained the queue."""
    global _listener, _queue_handler

    if _listener is not None:
        # stop() enqueues a sentinel and joins, so queued records are written first
        _listener.stop()
        _listener = None
    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **overrides: Any,
) -> None:
    """Configure logging once per process; later calls are no-ops unless ``force``."""
    global _configured

    if _configured and not force:
        return
    if log_settings is None:
        from shopgraph.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **overrides})
    _configured = True


def configure_logging(
    log_level: str = "INFO",
    *,
    json_logs: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    include_context: bool = True,
    service_name: str = "shopgraph",
) -> None:
    """Install the root logger configuration.

    Args:
        log_level: Root level name.
        json_logs: Render JSON Lines; plain text otherwise.
        file_path: Optional rotating file alongside stderr.
        file_max_bytes: Rotation size of ``file_path``.
        file_backup_count: Rotated files to keep.
        include_context: Attach ContextInjectingFilter to the root logger.
        service_name: Value of the static ``service`` field.
    """
    logging.captureWarnings(True)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"context": {"()": "shopgraph.infra.logging.context.ContextInjectingFilter"}},
            "root": {
                "level": log_level.upper(),
                "handlers": [],
                "filters": ["context"] if include_context else [],
            },
        }
    )

    formatter: logging.Formatter
    if json_logs:
        formatter = JSONFormatter(static={"service": service_name})
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(path, maxBytes=file_max_bytes, backupCount=file_backup_count, encoding="utf-8")
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    _install_queue(handlers)
    logger.debug("Logging configured", extra={"json_logs": json_logs, "file": str(file_path) if file_path else None})


def _install_queue(handlers: list[logging.Handler]) -> None:
    global _listener, _queue_handler

    first = _listener is None and _queue_handler is None
    shutdown()

    queue: SimpleQueue[logging.LogRecord] = SimpleQueue()
    _listener = QueueListener(queue, *handlers, respect_handler_level=True)
    _listener.start()
    _queue_handler = QueueHandler(queue)
    logging.getLogger().addHandler(_queue_handler)
    if first:
        atexit.register(shutdown)
