"""
Recurring schedule value types.

``RecurringPatternSpec`` is what a user submits; ``RecurringPattern`` is
what the store persisted (with a concrete ``end_date``);
``ScheduledOccurrence`` is one materialized date. Days of the week use
0=Sunday .. 6=Saturday throughout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"


@dataclass(frozen=True, slots=True)
class RecurringPatternSpec:
    name: str
    workout_template_id: str
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    duration_weeks: Optional[int] = None
    days_of_week: Tuple[int, ...] = ()
    times_per_week: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RecurringPattern:
    id: str
    user_id: str
    name: str
    workout_template_id: str
    frequency: Frequency
    start_date: date
    end_date: date
    days_of_week: Tuple[int, ...] = ()
    times_per_week: Optional[int] = None
    duration_weeks: Optional[int] = None
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class ScheduledOccurrence:
    id: str
    pattern_id: str
    user_id: str
    workout_template_id: str
    scheduled_date: date
    title: str


@dataclass(frozen=True, slots=True)
class OccurrenceFailure:
    scheduled_date: date
    error_type: str
    message: str


@dataclass(frozen=True, slots=True)
class MaterializationResult:
    """
    Partial-success result of creating a pattern's occurrences.

    A non-empty ``failed`` is a warning, not an error: the pattern and every
    date in ``succeeded`` were persisted.
    """

    pattern: RecurringPattern
    succeeded: Tuple[ScheduledOccurrence, ...] = ()
    failed: Tuple[OccurrenceFailure, ...] = field(default_factory=tuple)

    @property
    def occurrences_created(self) -> int:
        return len(self.succeeded)

    @property
    def occurrences_failed(self) -> int:
        return len(self.failed)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed)
