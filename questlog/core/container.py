"""
Service Container

Purpose
-------
Explicit construction of every questlog service and its collaborators.
Nothing is a module-level singleton: each container owns its ConfigManager,
EventBus, Store and Clock, so tests can build as many independent
containers as they need.

Responsibilities
----------------
- Build the pure rule objects (LevelCurve, StreakTracker, AchievementEvaluator,
  RecurringScheduleGenerator) from configuration
- Build the store (InMemoryStore by default, SqlStore when given a database)
- Build the services with their loggers
- Dispose the database engine on shutdown when the container owns it

Usage
-----
    container = ServiceContainer(ConfigManager(), EventBus(), get_logger("questlog"))
    await container.initialize()
    result = await container.action_processor.process("u_1", "complete_goal")

    sql = await ServiceContainer.create_sql()
    ...
    await sql.shutdown()
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from questlog.core.config.config import Config
from questlog.core.config.manager import ConfigManager
from questlog.core.event.bus import EventBus
from questlog.core.logging.logger import get_logger
from questlog.modules.gamification import (
    AchievementEvaluator,
    ActionProcessor,
    LevelCurve,
    StreakTracker,
    SystemClock,
)
from questlog.modules.leaderboard import LeaderboardRanker
from questlog.modules.schedule import RecurringScheduleGenerator, ScheduleMaterializer
from questlog.store.memory_store import InMemoryStore

if TYPE_CHECKING:
    from logging import Logger

    from questlog.core.database.service import DatabaseService
    from questlog.modules.gamification.streak_logic import Clock
    from questlog.store.port import Store


class ServiceContainer:
    """
    Dependency container for the gamification and schedule services.

    Accessing a service before ``initialize()`` raises ``RuntimeError``.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        *,
        store: Optional[Store] = None,
        clock: Optional[Clock] = None,
        database: Optional[DatabaseService] = None,
        owns_database: bool = False,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger
        self._store = store
        self._clock: Clock = clock or SystemClock()
        self._database = database
        self._owns_database = owns_database

        self._level_curve: Optional[LevelCurve] = None
        self._action_processor: Optional[ActionProcessor] = None
        self._leaderboard: Optional[LeaderboardRanker] = None
        self._schedule: Optional[ScheduleMaterializer] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}

    # ========================================================================
    # Construction helpers
    # ========================================================================

    @classmethod
    async def create_sql(
        cls,
        config_manager: Optional[ConfigManager] = None,
        event_bus: Optional[EventBus] = None,
        *,
        database_url: Optional[str] = None,
        clock: Optional[Clock] = None,
    ) -> "ServiceContainer":
        """Initialize a DatabaseService and return a container backed by SqlStore."""
        from questlog.core.database.service import DatabaseService

        config_manager = config_manager or ConfigManager.from_directory()
        event_bus = event_bus or EventBus(
            listener_timeout_seconds=float(
                config_manager.get("core.event.listener_timeout_seconds", 5.0)
            )
        )
        database = DatabaseService(database_url)
        await database.initialize()

        container = cls(
            config_manager,
            event_bus,
            get_logger("questlog.container"),
            clock=clock,
            database=database,
            owns_database=True,
        )
        try:
            await container.initialize()
        except Exception:
            await database.shutdown()
            raise
        return container

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        start_all = time.perf_counter()
        try:
            self._level_curve = LevelCurve.from_config(self._config_manager)

            if self._store is None:
                self._store = self._build_store(self._level_curve)

            streaks = StreakTracker(self._clock, Config.DEFAULT_TIMEZONE)
            generator = RecurringScheduleGenerator.from_config(self._config_manager)

            self._action_processor = self._create_service(
                "action_processor",
                ActionProcessor,
                store=self._store,
                level_curve=self._level_curve,
                streak_tracker=streaks,
                evaluator=AchievementEvaluator(),
                clock=self._clock,
            )
            self._leaderboard = self._create_service(
                "leaderboard",
                LeaderboardRanker,
                store=self._store,
                level_curve=self._level_curve,
                clock=self._clock,
            )
            self._schedule = self._create_service(
                "schedule",
                ScheduleMaterializer,
                store=self._store,
                generator=generator,
            )
        except Exception as exc:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(exc)},
            )
            raise

        self._initialized = True
        self._logger.info(
            "Service container initialized",
            extra={
                "total_time_seconds": round(time.perf_counter() - start_all, 3),
                "service_count": len(self._service_init_times),
                "store": type(self._store).__name__,
                **Config.summary(),
            },
        )

    def _build_store(self, level_curve: LevelCurve) -> Store:
        if self._database is None:
            return InMemoryStore(level_curve)

        from questlog.store.sql_store import SqlStore

        return SqlStore(self._database, level_curve)

    def _create_service(self, name: str, cls: type, **dependencies: Any) -> Any:
        start = time.perf_counter()
        try:
            instance = cls(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
                **dependencies,
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        self._logger.info("Shutting down service container...")
        if self._database is not None and self._owns_database:
            await self._database.shutdown()
        self._initialized = False
        self._logger.info("Service container shut down")

    # ========================================================================
    # Accessors
    # ========================================================================

    def _require(self, service: Optional[Any]) -> Any:
        if not self._initialized or service is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return service

    @property
    def config_manager(self) -> ConfigManager:
        return self._config_manager

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def store(self) -> Store:
        return self._require(self._store)

    @property
    def level_curve(self) -> LevelCurve:
        return self._require(self._level_curve)

    @property
    def action_processor(self) -> ActionProcessor:
        return self._require(self._action_processor)

    @property
    def leaderboard(self) -> LeaderboardRanker:
        return self._require(self._leaderboard)

    @property
    def schedule(self) -> ScheduleMaterializer:
        return self._require(self._schedule)
