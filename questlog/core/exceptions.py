"""
Exception roots for questlog.

``QuestlogError`` carries what a handler needs to log or translate an
error without knowing its concrete type: a stable ``error_code``,
structured ``details``, a ``severity`` and a retry hint. Two branches hang
off it:

- ``QuestlogInfrastructureException`` (this module): configuration
  problems and an unreachable store.
- ``QuestlogDomainException`` (``questlog.modules.shared.exceptions``):
  rejected input and lost races.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(str, Enum):
    INFO = "info"  # expected, caller's fault
    WARNING = "warning"  # handled internally
    ERROR = "error"
    CRITICAL = "critical"  # process cannot work correctly


class QuestlogError(Exception):
    severity: ErrorSeverity = ErrorSeverity.ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "error_type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "details": self.details,
        }


class QuestlogInfrastructureException(QuestlogError):
    pass


class ConfigurationError(QuestlogInfrastructureException):
    """A configuration key or YAML file is missing or malformed."""

    severity = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"{config_key}: {message}",
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key},
        )


class StoreUnavailableError(QuestlogInfrastructureException):
    """
    The store could not be reached, timed out, or the circuit breaker is
    open. Marked retryable for callers; the core never retries it.
    """

    retryable = True

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(
            f"Store unavailable during {operation}: {reason}",
            error_code="STORE_UNAVAILABLE",
            details={"operation": operation, "reason": reason},
        )

    @property
    def user_message(self) -> str:
        return "Something went wrong on our side. Please try again."
