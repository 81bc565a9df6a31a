"""
Unit tests for ServiceContainer wiring over the in-memory store.
"""

import pytest

from questlog.core.container import ServiceContainer
from questlog.core.event.bus import EventBus
from questlog.core.logging.logger import get_logger
from questlog.domain.models import Frequency, RecurringPatternSpec
from questlog.store.memory_store import InMemoryStore

pytestmark = pytest.mark.unit


@pytest.fixture
def container(config_manager, clock):
    return ServiceContainer(
        config_manager,
        EventBus(),
        get_logger("tests.container"),
        clock=clock,
    )


@pytest.mark.asyncio
class TestServiceContainer:
    async def test_services_unavailable_before_initialize(self, container):
        with pytest.raises(RuntimeError):
            _ = container.action_processor

    async def test_defaults_to_in_memory_store(self, container):
        await container.initialize()

        assert isinstance(container.store, InMemoryStore)
        assert container.level_curve.max_level == 50

    async def test_services_share_store_and_bus(self, container):
        # Arrange
        await container.initialize()
        events = []
        container.event_bus.subscribe("gamification.*", lambda data: events.append(data))

        # Act
        await container.action_processor.process("u1", "complete_goal")
        ranking = await container.leaderboard.rank("xp", limit=5)

        # Assert
        assert [(entry.user_id, entry.value) for entry in ranking] == [("u1", 15)]
        assert events and events[0]["user_id"] == "u1"

    async def test_schedule_service_wired(self, container, clock):
        await container.initialize()

        result = await container.schedule.create_pattern(
            "u1",
            RecurringPatternSpec(
                name="Cardio",
                workout_template_id="tmpl_1",
                frequency=Frequency.DAILY,
                start_date=clock.now().date(),
                duration_weeks=1,
            ),
        )

        assert result.occurrences_created == 8

    async def test_injected_store_is_used(self, config_manager, level_curve):
        store = InMemoryStore(level_curve)
        container = ServiceContainer(
            config_manager, EventBus(), get_logger("tests.container"), store=store
        )

        await container.initialize()

        assert container.store is store

    async def test_shutdown_resets_state(self, container):
        await container.initialize()

        await container.shutdown()

        with pytest.raises(RuntimeError):
            _ = container.leaderboard
