"""
Database subsystem: async SQLAlchemy engine, sessions, circuit breaker,
and the ORM base classes for model definitions.
"""

from questlog.core.database.base import Base, IdMixin, TimestampMixin, new_id, utc_now
from questlog.core.database.circuit_breaker import CircuitBreaker, CircuitState
from questlog.core.database.service import DatabaseNotInitializedError, DatabaseService

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "new_id",
    "utc_now",
    "CircuitBreaker",
    "CircuitState",
    "DatabaseService",
    "DatabaseNotInitializedError",
]
