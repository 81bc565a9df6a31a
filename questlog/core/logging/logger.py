"""
Structured logging for questlog.

Records are handed to a bounded queue and written by a background
``QueueListener`` thread, so a slow stdout never stalls the event loop.
Every record carries the action context bound with ``LogContext``
(user_id, operation, correlation_id). Fields passed via
``logger.info("msg", extra={...})`` are kept as structured data.

Output is one JSON object per line in production or when ``LOG_JSON`` is
set; otherwise a single readable text line.
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict, Optional

from questlog.core.config.config import Config

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(operation)s user=%(user_id)s] %(message)s"
QUEUE_CAPACITY = 10_000
CONTEXT_FIELDS = ("user_id", "operation", "correlation_id")

_action_context: ContextVar[Dict[str, Any]] = ContextVar("questlog_log_context", default={})

# Attributes every LogRecord has; anything else came from ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


# ============================================================================
# Health counters
# ============================================================================


@dataclass(slots=True)
class LoggingHealth:
    initialized: bool = False
    enqueued: int = 0
    dropped: int = 0
    handler_errors: int = 0
    queue_size: int = 0


_health = LoggingHealth()
_listener: Optional[QueueListener] = None
_queue: Optional["queue.Queue[logging.LogRecord]"] = None


# ============================================================================
# Filters and formatters
# ============================================================================


class ActionContextFilter(logging.Filter):
    """Copy the bound action context onto the record unless ``extra`` set it."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _action_context.get()
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, context.get(field, "-"))
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, "-")
            if value != "-":
                payload[field] = value

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in CONTEXT_FIELDS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class _BoundedQueueHandler(QueueHandler):
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            _health.dropped += 1
        else:
            _health.enqueued += 1


class _CountingListener(QueueListener):
    def handleError(self, record: logging.LogRecord) -> None:
        _health.handler_errors += 1


# ============================================================================
# Setup
# ============================================================================


def _use_json() -> bool:
    if Config.LOG_JSON is not None:
        return bool(Config.LOG_JSON)
    return Config.is_production()


def setup_logging() -> None:
    """Install the queue handler on the root logger. Safe to call twice."""
    global _listener, _queue

    if _health.initialized:
        return

    level = getattr(logging, Config.LOG_LEVEL, logging.INFO)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JSONFormatter() if _use_json() else logging.Formatter(TEXT_FORMAT))

    _queue = queue.Queue(QUEUE_CAPACITY)
    _listener = _CountingListener(_queue, console)
    _listener.start()

    handler = _BoundedQueueHandler(_queue)
    handler.addFilter(ActionContextFilter())
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _health.initialized = True
    logging.getLogger(__name__).debug(
        "Logging initialized",
        extra={"level": Config.LOG_LEVEL, "json": _use_json()},
    )


def shutdown_logging() -> None:
    """Flush queued records and detach the handler."""
    global _listener, _queue

    if not _health.initialized:
        return

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, _BoundedQueueHandler):
            root.removeHandler(handler)
            handler.close()
    if _listener is not None:
        _listener.stop()

    _listener = None
    _queue = None
    _health.initialized = False


def get_logging_health() -> LoggingHealth:
    return LoggingHealth(
        initialized=_health.initialized,
        enqueued=_health.enqueued,
        dropped=_health.dropped,
        handler_errors=_health.handler_errors,
        queue_size=_queue.qsize() if _queue is not None else 0,
    )


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Bind action context to every record logged inside the block.

    Nested contexts inherit the outer correlation id.

    >>> async with LogContext(user_id="u_1", operation="process_action"):
    ...     logger.info("XP awarded")
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        operation: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        outer = _action_context.get()
        self.context: Dict[str, Any] = dict(outer)
        self.context["correlation_id"] = (
            correlation_id or outer.get("correlation_id") or uuid.uuid4().hex[:8]
        )
        if user_id is not None:
            self.context["user_id"] = str(user_id)
        if operation is not None:
            self.context["operation"] = operation
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _action_context.set(self.context)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._token is not None:
            _action_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


def get_log_context() -> Dict[str, Any]:
    return dict(_action_context.get())


setup_logging()
