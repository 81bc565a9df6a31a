"""
Schedule Materializer

Purpose
-------
Creates a recurring workout pattern and one scheduled occurrence per
generated date.

Domain
------
- Validate the pattern spec before anything is written
- Persist the pattern with its resolved end date
- Create occurrences concurrently, bounded by ``schedule.materialize_concurrency``
- Report partial success: a date that fails is logged and recorded, and
  never aborts the others

Error Handling
--------------
- ``ValidationError`` from validation propagates; nothing was written.
- ``StoreUnavailableError`` while persisting the pattern propagates.
- Any exception creating a single occurrence becomes an ``OccurrenceFailure``
  in the result.

Events
------
- ``schedule.pattern_created``
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import TYPE_CHECKING, List, Optional, Union

from questlog.core.logging.logger import LogContext
from questlog.core.validation.input_validator import InputValidator
from questlog.domain.models import (
    MaterializationResult,
    OccurrenceFailure,
    RecurringPattern,
    RecurringPatternSpec,
    ScheduledOccurrence,
)
from questlog.modules.schedule.recurrence_logic import format_occurrence_title
from questlog.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from questlog.core.config.manager import ConfigManager
    from questlog.core.event.bus import EventBus
    from questlog.modules.schedule.recurrence_logic import RecurringScheduleGenerator
    from questlog.store.port import Store


class ScheduleMaterializer(BaseService):
    """
    Persists recurring patterns and their occurrences.

    Public Methods
    --------------
    - create_pattern() -> Persist a pattern and materialize its dates
    - preview_pattern() -> Dates a spec would produce, nothing persisted
    """

    def __init__(
        self,
        store: Store,
        generator: RecurringScheduleGenerator,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._generator = generator

    async def create_pattern(
        self, user_id: str, spec: RecurringPatternSpec
    ) -> MaterializationResult:
        """
        Validate ``spec``, persist it and create its occurrences.

        Returns:
            MaterializationResult with the stored pattern, the created
            occurrences and one OccurrenceFailure per date that failed

        Raises:
            ValidationError: The spec is malformed (nothing written)
            StoreUnavailableError: The pattern itself could not be stored
        """
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        resolved = self._generator.resolve(spec)

        async with LogContext(user_id=user_id, operation="create_pattern"):
            self.log_operation(
                "create_pattern",
                frequency=resolved.frequency.value,
                start_date=resolved.start_date.isoformat(),
                end_date=resolved.end_date.isoformat() if resolved.end_date else None,
            )

            pattern = await self._store.create_recurring_pattern(user_id, resolved)
            dates = self._generator.generate(pattern)

            limit = max(1, int(self.get_config("schedule.materialize_concurrency", 8)))
            semaphore = asyncio.Semaphore(limit)
            outcomes = await asyncio.gather(
                *(self._create_one(semaphore, pattern, day) for day in dates)
            )

            succeeded: List[ScheduledOccurrence] = []
            failed: List[OccurrenceFailure] = []
            for outcome in outcomes:
                if isinstance(outcome, OccurrenceFailure):
                    failed.append(outcome)
                else:
                    succeeded.append(outcome)
            succeeded.sort(key=lambda occurrence: occurrence.scheduled_date)
            failed.sort(key=lambda failure: failure.scheduled_date)

            result = MaterializationResult(
                pattern=pattern, succeeded=tuple(succeeded), failed=tuple(failed)
            )

            log = self.log.warning if result.is_partial else self.log.info
            log(
                "Recurring pattern materialized",
                extra={
                    "pattern_id": pattern.id,
                    "occurrences_created": result.occurrences_created,
                    "occurrences_failed": result.occurrences_failed,
                },
            )

            await self.emit_event(
                "schedule.pattern_created",
                {
                    "user_id": user_id,
                    "pattern_id": pattern.id,
                    "occurrences_created": result.occurrences_created,
                    "occurrences_failed": result.occurrences_failed,
                },
            )
            return result

    def preview_pattern(
        self, spec: RecurringPatternSpec, weeks: Optional[int] = None
    ) -> List[date]:
        return self._generator.preview(spec, weeks)

    async def _create_one(
        self,
        semaphore: asyncio.Semaphore,
        pattern: RecurringPattern,
        scheduled_date: date,
    ) -> Union[ScheduledOccurrence, OccurrenceFailure]:
        async with semaphore:
            try:
                return await self._store.create_occurrence(
                    pattern,
                    scheduled_date,
                    format_occurrence_title(pattern.name, scheduled_date),
                )
            except Exception as exc:
                self.log.warning(
                    "Failed to create scheduled occurrence; continuing",
                    extra={
                        "pattern_id": pattern.id,
                        "scheduled_date": scheduled_date.isoformat(),
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                return OccurrenceFailure(
                    scheduled_date=scheduled_date,
                    error_type=type(exc).__name__,
                    message=str(exc),
                )
