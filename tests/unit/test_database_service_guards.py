"""
Unit tests for DatabaseService use before initialize().

No engine is created, so these run without PostgreSQL.
"""

import pytest

from questlog.core.database import CircuitBreaker, DatabaseNotInitializedError, DatabaseService

pytestmark = pytest.mark.unit


@pytest.fixture
def service():
    return DatabaseService("postgresql+asyncpg://unused/unused")


async def test_engine_requires_initialize(service):
    with pytest.raises(DatabaseNotInitializedError):
        _ = service.engine


async def test_session_requires_initialize(service):
    with pytest.raises(DatabaseNotInitializedError):
        async with service.get_session("read_profile"):
            pass


async def test_transaction_requires_initialize(service):
    with pytest.raises(DatabaseNotInitializedError):
        async with service.get_transaction("append_transaction"):
            pass


async def test_uninitialized_use_leaves_breaker_closed():
    # Arrange
    breaker = CircuitBreaker(failure_threshold=1)
    service = DatabaseService("postgresql+asyncpg://unused/unused", circuit_breaker=breaker)

    # Act
    for _ in range(3):
        with pytest.raises(DatabaseNotInitializedError):
            async with service.get_transaction():
                pass

    # Assert
    assert await breaker.allow_request() is True
