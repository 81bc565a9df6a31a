"""
Recurring workout schedule generation.

Purpose
-------
Validates recurring pattern input and expands a pattern into its concrete
calendar dates. Pure: nothing here reads the clock or touches the store.

Rules
-----
- ``daily``: every date from start to end inclusive.
- ``weekly``: the listed weekdays (0=Sunday .. 6=Saturday) of every week
  from the week containing ``start_date`` through ``end_date``, kept only
  when inside ``[start_date, end_date]``. Weeks start on Sunday.
- ``custom``: from each weekly anchor ``start_date + 7k``, ``times_per_week``
  dates spaced ``7 // times_per_week`` days apart. This is even spacing
  anchored on the start weekday, not a guarantee of exactly
  ``times_per_week`` dates per calendar week; the final partial week may
  hold fewer.

Output is always sorted ascending with no duplicates.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Set, Tuple

from questlog.core.validation.input_validator import InputValidator
from questlog.domain.models import Frequency, RecurringPattern, RecurringPatternSpec
from questlog.modules.shared.constants import (
    DAYS_PER_WEEK,
    MAX_DESCRIPTION_LENGTH,
    MAX_PATTERN_NAME_LENGTH,
    MAX_TIMES_PER_WEEK,
    MIN_TIMES_PER_WEEK,
    OCCURRENCE_TITLE_DATE_FORMAT,
)
from questlog.modules.shared.exceptions import ValidationError
from questlog.modules.shared.formulas import start_of_week

if TYPE_CHECKING:
    from questlog.core.config.manager import ConfigManager


# Presets offered to users when creating a pattern.
COMMON_PATTERNS: Tuple[Dict[str, Any], ...] = (
    {
        "name": "Daily Cardio",
        "description": "Cardio workout every day",
        "frequency": Frequency.DAILY,
    },
    {
        "name": "MWF Strength",
        "description": "Strength training on Monday, Wednesday, Friday",
        "frequency": Frequency.WEEKLY,
        "days_of_week": (1, 3, 5),
    },
    {
        "name": "Weekend Warrior",
        "description": "Workouts on Saturday and Sunday",
        "frequency": Frequency.WEEKLY,
        "days_of_week": (0, 6),
    },
    {
        "name": "Leg Day (3x/week)",
        "description": "Leg workouts 3 times per week",
        "frequency": Frequency.CUSTOM,
        "times_per_week": 3,
    },
    {
        "name": "Upper Body (2x/week)",
        "description": "Upper body workouts 2 times per week",
        "frequency": Frequency.CUSTOM,
        "times_per_week": 2,
    },
    {
        "name": "Full Body (4x/week)",
        "description": "Full body workouts 4 times per week",
        "frequency": Frequency.CUSTOM,
        "times_per_week": 4,
    },
)


def format_occurrence_title(pattern_name: str, scheduled_date: date) -> str:
    """
    Example:
        >>> format_occurrence_title("Leg Day", date(2024, 1, 5))
        'Leg Day - Jan 05'
    """
    return f"{pattern_name} - {scheduled_date.strftime(OCCURRENCE_TITLE_DATE_FORMAT)}"


class RecurringScheduleGenerator:
    """
    Validation and date expansion for recurring patterns.

    Example:
        >>> generator = RecurringScheduleGenerator()
        >>> spec = RecurringPatternSpec(
        ...     name="Cardio",
        ...     workout_template_id="tmpl_1",
        ...     frequency=Frequency.DAILY,
        ...     start_date=date(2024, 1, 1),
        ...     end_date=date(2024, 1, 3),
        ... )
        >>> generator.generate_for_spec(generator.validate(spec))
        [datetime.date(2024, 1, 1), datetime.date(2024, 1, 2), datetime.date(2024, 1, 3)]
    """

    def __init__(
        self,
        default_horizon_days: int = 365,
        max_horizon_days: int = 1096,
        preview_weeks: int = 4,
    ) -> None:
        self._default_horizon_days = default_horizon_days
        self._max_horizon_days = max_horizon_days
        self._preview_weeks = preview_weeks

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> "RecurringScheduleGenerator":
        return cls(
            default_horizon_days=int(config_manager.get("schedule.default_horizon_days", 365)),
            max_horizon_days=int(config_manager.get("schedule.max_horizon_days", 1096)),
            preview_weeks=int(config_manager.get("schedule.preview_weeks", 4)),
        )

    # ========================================================================
    # VALIDATION
    # ========================================================================

    def validate(self, spec: RecurringPatternSpec) -> RecurringPatternSpec:
        """
        Check every field and return a normalized copy.

        The returned spec has a ``Frequency`` enum, stripped strings, a
        sorted de-duplicated ``days_of_week`` and ``date`` values. Its
        ``end_date`` is left as given; see ``resolve_end_date``.

        Raises:
            ValidationError: Naming the first field that failed
        """
        name = InputValidator.validate_string(
            spec.name, "name", max_length=MAX_PATTERN_NAME_LENGTH
        )
        template_id = InputValidator.validate_identifier(
            spec.workout_template_id, "workout_template_id"
        )
        frequency = self._coerce_frequency(spec.frequency)
        start = InputValidator.validate_date(spec.start_date, "start_date")
        end = (
            InputValidator.validate_date(spec.end_date, "end_date")
            if spec.end_date is not None
            else None
        )

        days = InputValidator.validate_days_of_week(
            spec.days_of_week, "days_of_week", required=frequency is Frequency.WEEKLY
        )

        times = spec.times_per_week
        if frequency is Frequency.CUSTOM and times is None:
            raise ValidationError(
                "times_per_week",
                f"Times per week must be between {MIN_TIMES_PER_WEEK} and "
                f"{MAX_TIMES_PER_WEEK} for custom frequency",
            )
        if times is not None:
            times = InputValidator.validate_integer(
                times, "times_per_week", MIN_TIMES_PER_WEEK, MAX_TIMES_PER_WEEK
            )

        duration = spec.duration_weeks
        if duration is not None:
            duration = InputValidator.validate_positive_integer(duration, "duration_weeks")

        if end is not None and end < start:
            raise ValidationError("end_date", "End date cannot be before start date")

        description = spec.description
        if description is not None:
            description = InputValidator.validate_string(
                description, "description", min_length=0, max_length=MAX_DESCRIPTION_LENGTH
            )

        normalized = RecurringPatternSpec(
            name=name,
            workout_template_id=template_id,
            frequency=frequency,
            start_date=start,
            end_date=end,
            duration_weeks=duration,
            days_of_week=tuple(days),
            times_per_week=times,
            description=description or None,
        )

        horizon = (self.resolve_end_date(normalized) - start).days
        if horizon > self._max_horizon_days:
            raise ValidationError(
                "end_date",
                f"Schedule cannot span more than {self._max_horizon_days} days",
            )
        return normalized

    @staticmethod
    def _coerce_frequency(value: Any) -> Frequency:
        if isinstance(value, Frequency):
            return value
        choice = InputValidator.validate_choice(
            value, "frequency", [member.value for member in Frequency]
        )
        return Frequency(choice)

    def resolve_end_date(self, spec: RecurringPatternSpec) -> date:
        """Explicit end, else ``duration_weeks`` from start, else the default horizon."""
        if spec.end_date is not None:
            return spec.end_date
        if spec.duration_weeks:
            return spec.start_date + timedelta(days=spec.duration_weeks * DAYS_PER_WEEK)
        return spec.start_date + timedelta(days=self._default_horizon_days)

    def resolve(self, spec: RecurringPatternSpec) -> RecurringPatternSpec:
        """Validate and fill in ``end_date``."""
        validated = self.validate(spec)
        return replace(validated, end_date=self.resolve_end_date(validated))

    # ========================================================================
    # GENERATION
    # ========================================================================

    def generate(self, pattern: RecurringPattern) -> List[date]:
        """All dates of a persisted pattern, ascending and unique."""
        return self._expand(
            pattern.frequency,
            pattern.start_date,
            pattern.end_date,
            pattern.days_of_week,
            pattern.times_per_week,
        )

    def generate_for_spec(self, spec: RecurringPatternSpec) -> List[date]:
        """Dates of an already validated spec, resolving its end date."""
        return self._expand(
            spec.frequency,
            spec.start_date,
            self.resolve_end_date(spec),
            spec.days_of_week,
            spec.times_per_week,
        )

    def preview(
        self, spec: RecurringPatternSpec, weeks: Optional[int] = None
    ) -> List[date]:
        """
        Dates a pattern would produce over its first ``weeks`` weeks, without
        persisting anything. Capped at ``weeks * 7`` dates.
        """
        weeks = InputValidator.validate_positive_integer(
            weeks if weeks is not None else self._preview_weeks, "weeks", max_value=52
        )
        validated = self.validate(spec)
        window = weeks * DAYS_PER_WEEK
        end = validated.end_date or validated.start_date + timedelta(days=window)
        dates = self._expand(
            validated.frequency,
            validated.start_date,
            end,
            validated.days_of_week,
            validated.times_per_week,
        )
        return dates[:window]

    def _expand(
        self,
        frequency: Frequency,
        start: date,
        end: date,
        days_of_week: Sequence[int],
        times_per_week: Optional[int],
    ) -> List[date]:
        dates: Set[date] = set()

        if frequency is Frequency.DAILY:
            for offset in range((end - start).days + 1):
                dates.add(start + timedelta(days=offset))

        elif frequency is Frequency.WEEKLY:
            week_start = start_of_week(start)
            while week_start <= end:
                for day in days_of_week:
                    candidate = week_start + timedelta(days=day)
                    if start <= candidate <= end:
                        dates.add(candidate)
                week_start += timedelta(days=DAYS_PER_WEEK)

        elif frequency is Frequency.CUSTOM:
            if not times_per_week:
                raise ValidationError("times_per_week", "Required for custom frequency")
            step = DAYS_PER_WEEK // times_per_week
            anchor = start
            while anchor <= end:
                for index in range(times_per_week):
                    candidate = anchor + timedelta(days=index * step)
                    if candidate <= end:
                        dates.add(candidate)
                anchor += timedelta(days=DAYS_PER_WEEK)

        else:
            raise ValidationError("frequency", f"Unsupported frequency {frequency!r}")

        return sorted(dates)
