"""Structured, queue-backed logging for questlog."""

from questlog.core.logging.logger import (
    JSONFormatter,
    LogContext,
    get_log_context,
    get_logger,
    get_logging_health,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "JSONFormatter",
    "LogContext",
    "get_log_context",
    "get_logger",
    "get_logging_health",
    "setup_logging",
    "shutdown_logging",
]
