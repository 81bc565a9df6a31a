"""
Domain exceptions raised by questlog services and stores.

``ValidationError`` is raised before any state is written and always
names the offending field. ``ConflictError`` comes out of a store when a
concurrent write won; the services absorb it (one retry for the streak
update, skip for a duplicate unlock), so callers normally only see it from
direct store calls such as inserting the same occurrence twice.
"""

from __future__ import annotations

from typing import Any, Optional

from questlog.core.exceptions import ErrorSeverity, QuestlogError


class QuestlogDomainException(QuestlogError):
    pass


class ValidationError(QuestlogDomainException):
    severity = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Invalid {field}: {message}",
            error_code=f"VALIDATION_{field.upper()}",
            details={"field": field},
        )


class ConflictError(QuestlogDomainException):
    severity = ErrorSeverity.WARNING
    retryable = True

    def __init__(self, resource: str, reason: str, identifier: Optional[Any] = None) -> None:
        self.resource = resource
        self.reason = reason
        self.identifier = identifier
        super().__init__(
            f"Conflict on {resource}: {reason}",
            error_code=f"{resource.upper()}_CONFLICT",
            details={"identifier": identifier} if identifier is not None else None,
        )
