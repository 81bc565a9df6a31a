"""
Pytest Configuration and Fixtures for questlog Tests
====================================================

Purpose
-------
Centralized fixtures for the questlog test suite: a controllable clock,
configuration, the in-memory store and services wired against it, and a
PostgreSQL testcontainer for the SQL store.

Architecture Notes
------------------
- Unit tests run against ``InMemoryStore`` (fast, isolated)
- Database tests run against ``SqlStore`` on a real PostgreSQL container
- The container is session-scoped; schema is created and dropped per test
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio

from questlog.core.config.config import Config
from questlog.core.config.manager import ConfigManager
from questlog.core.event.bus import EventBus
from questlog.core.logging.logger import get_logger
from questlog.modules.gamification import (
    AchievementEvaluator,
    ActionProcessor,
    LevelCurve,
    StreakTracker,
)
from questlog.modules.leaderboard import LeaderboardRanker
from questlog.modules.schedule import RecurringScheduleGenerator, ScheduleMaterializer
from questlog.store.memory_store import InMemoryStore

logger = get_logger(__name__)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    Config.load()


# ============================================================================
# CLOCK
# ============================================================================


class FixedClock:
    """Clock whose time only moves when a test moves it."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


@pytest.fixture
def clock() -> FixedClock:
    """
    Clock fixed at 2024-03-10 12:00 UTC.

    Scope: function
    Uses: Any test that depends on "now"
    """
    return FixedClock(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


# ============================================================================
# CONFIGURATION & EVENTS
# ============================================================================


@pytest.fixture
def config_manager() -> ConfigManager:
    """
    Built-in defaults only, so tests do not depend on the YAML on disk.

    Scope: function
    """
    return ConfigManager()


@pytest.fixture
def event_bus() -> EventBus:
    """Real EventBus for tests that subscribe listeners."""
    return EventBus(listener_timeout_seconds=1.0)


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that assert on published events
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def published_events(mock_event_bus):
    """Callable returning the event names published so far, in order."""

    def names() -> list:
        return [call.args[0] for call in mock_event_bus.publish.await_args_list]

    return names


# ============================================================================
# RULES & STORE
# ============================================================================


@pytest.fixture
def level_curve(config_manager) -> LevelCurve:
    return LevelCurve.from_config(config_manager)


@pytest.fixture
def streak_tracker(clock) -> StreakTracker:
    return StreakTracker(clock)


@pytest.fixture
def generator() -> RecurringScheduleGenerator:
    return RecurringScheduleGenerator()


@pytest.fixture
def store(level_curve) -> InMemoryStore:
    """
    Empty in-memory store.

    Scope: function (clean slate per test)
    """
    return InMemoryStore(level_curve)


# ============================================================================
# SERVICES
# ============================================================================


@pytest.fixture
def processor(
    store, level_curve, streak_tracker, clock, config_manager, mock_event_bus
) -> ActionProcessor:
    return ActionProcessor(
        store=store,
        level_curve=level_curve,
        streak_tracker=streak_tracker,
        evaluator=AchievementEvaluator(),
        clock=clock,
        config_manager=config_manager,
        event_bus=mock_event_bus,
        logger=get_logger("tests.ActionProcessor"),
    )


@pytest.fixture
def ranker(store, level_curve, clock, config_manager, mock_event_bus) -> LeaderboardRanker:
    return LeaderboardRanker(
        store=store,
        level_curve=level_curve,
        clock=clock,
        config_manager=config_manager,
        event_bus=mock_event_bus,
        logger=get_logger("tests.LeaderboardRanker"),
    )


@pytest.fixture
def materializer(store, generator, config_manager, mock_event_bus) -> ScheduleMaterializer:
    return ScheduleMaterializer(
        store=store,
        generator=generator,
        config_manager=config_manager,
        event_bus=mock_event_bus,
        logger=get_logger("tests.ScheduleMaterializer"),
    )


# ============================================================================
# TESTCONTAINERS FIXTURES (Database Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator:
    """
    Start PostgreSQL testcontainer for database tests.

    Scope: session (container persists across all tests)
    """
    from testcontainers.postgres import PostgresContainer

    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:16-alpine", driver="asyncpg")
    container.start()
    logger.info("PostgreSQL testcontainer started")

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def database_service(postgres_container) -> AsyncGenerator:
    """
    Initialized DatabaseService with a fresh schema.

    Scope: function (tables created before and dropped after each test)
    """
    from questlog.core.database.service import DatabaseService
    from questlog.database.models import Base

    service = DatabaseService(postgres_container.get_connection_url())
    await service.initialize()
    async with service.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield service

    async with service.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await service.shutdown()


@pytest_asyncio.fixture
async def sql_store(database_service, level_curve):
    from questlog.store.sql_store import SqlStore

    return SqlStore(database_service, level_curve)
