"""
Unit tests for RecurringScheduleGenerator.

2024-01-01 is a Monday; weekday numbers use 0=Sunday .. 6=Saturday.
"""

from datetime import date, timedelta

import pytest

from questlog.domain.models import Frequency, RecurringPatternSpec
from questlog.modules.schedule import (
    COMMON_PATTERNS,
    RecurringScheduleGenerator,
    format_occurrence_title,
)
from questlog.modules.shared.exceptions import ValidationError

pytestmark = pytest.mark.unit


def spec(**overrides) -> RecurringPatternSpec:
    values = {
        "name": "Workout",
        "workout_template_id": "tmpl_1",
        "frequency": Frequency.DAILY,
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 1, 7),
    }
    values.update(overrides)
    return RecurringPatternSpec(**values)


def generate(generator, **overrides):
    return generator.generate_for_spec(generator.validate(spec(**overrides)))


class TestDaily:
    def test_every_day_inclusive(self, generator):
        dates = generate(generator)

        assert dates == [date(2024, 1, day) for day in range(1, 8)]

    def test_single_day(self, generator):
        assert generate(generator, end_date=date(2024, 1, 1)) == [date(2024, 1, 1)]

    def test_leap_day_included(self, generator):
        dates = generate(
            generator, start_date=date(2024, 2, 28), end_date=date(2024, 3, 1)
        )

        assert dates == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]


class TestWeekly:
    def test_monday_wednesday_friday(self, generator):
        dates = generate(
            generator,
            frequency=Frequency.WEEKLY,
            days_of_week=(1, 3, 5),
            end_date=date(2024, 1, 14),
        )

        assert dates == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 5),
            date(2024, 1, 8),
            date(2024, 1, 10),
            date(2024, 1, 12),
        ]

    def test_days_before_start_are_skipped(self, generator):
        """Starting on a Wednesday drops that week's Monday."""
        dates = generate(
            generator,
            frequency=Frequency.WEEKLY,
            days_of_week=(1, 3, 5),
            start_date=date(2024, 1, 3),
            end_date=date(2024, 1, 10),
        )

        assert dates == [date(2024, 1, 3), date(2024, 1, 5), date(2024, 1, 8), date(2024, 1, 10)]

    def test_weekend_spans_week_boundary(self, generator):
        """Saturday ends one Sunday-based week and Sunday starts the next."""
        dates = generate(
            generator,
            frequency=Frequency.WEEKLY,
            days_of_week=(0, 6),
            start_date=date(2024, 1, 6),
            end_date=date(2024, 1, 7),
        )

        assert dates == [date(2024, 1, 6), date(2024, 1, 7)]

    def test_days_are_normalized(self, generator):
        validated = generator.validate(
            spec(frequency=Frequency.WEEKLY, days_of_week=(5, 1, 5, "3"))
        )

        assert validated.days_of_week == (1, 3, 5)

    def test_frequency_accepts_string(self, generator):
        validated = generator.validate(spec(frequency="Weekly", days_of_week=(2,)))

        assert validated.frequency is Frequency.WEEKLY


class TestCustom:
    def test_three_times_per_week(self, generator):
        dates = generate(
            generator,
            frequency=Frequency.CUSTOM,
            times_per_week=3,
            end_date=date(2024, 1, 10),
        )

        assert dates == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 5),
            date(2024, 1, 8),
            date(2024, 1, 10),
        ]

    def test_three_weeks_stay_within_weekly_cap(self, generator):
        # Arrange
        end = date(2024, 1, 21)

        # Act
        dates = generate(
            generator, frequency=Frequency.CUSTOM, times_per_week=3, end_date=end
        )

        # Assert
        per_week = {}
        for day in dates:
            sunday = day - timedelta(days=(day.weekday() + 1) % 7)
            per_week[sunday] = per_week.get(sunday, 0) + 1
        assert max(dates) <= end
        assert all(count <= 3 for count in per_week.values())
        assert len(dates) == 9

    @pytest.mark.parametrize("times", ["--3", "²"])
    def test_malformed_times_per_week_names_field(self, generator, times):
        with pytest.raises(ValidationError) as exc_info:
            generator.validate(spec(frequency=Frequency.CUSTOM, times_per_week=times))

        assert exc_info.value.field == "times_per_week"

    def test_four_times_per_week_packs_consecutive_days(self, generator):
        dates = generate(
            generator,
            frequency=Frequency.CUSTOM,
            times_per_week=4,
            end_date=date(2024, 1, 14),
        )

        assert dates == [date(2024, 1, day) for day in (1, 2, 3, 4, 8, 9, 10, 11)]

    def test_seven_times_per_week_is_daily(self, generator):
        custom = generate(
            generator,
            frequency=Frequency.CUSTOM,
            times_per_week=7,
            end_date=date(2024, 1, 21),
        )
        daily = generate(generator, end_date=date(2024, 1, 21))

        assert custom == daily


class TestEndDateResolution:
    def test_duration_weeks(self, generator):
        resolved = generator.resolve(spec(end_date=None, duration_weeks=2))

        assert resolved.end_date == date(2024, 1, 15)

    def test_default_horizon(self, generator):
        resolved = generator.resolve(spec(end_date=None))

        assert resolved.end_date == date(2024, 1, 1) + timedelta(days=365)

    def test_explicit_end_wins(self, generator):
        resolved = generator.resolve(spec(end_date=date(2024, 2, 1), duration_weeks=52))

        assert resolved.end_date == date(2024, 2, 1)

    def test_configured_horizon(self):
        generator = RecurringScheduleGenerator(default_horizon_days=30)

        resolved = generator.resolve(spec(end_date=None))

        assert resolved.end_date == date(2024, 1, 31)


class TestValidation:
    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"name": "  "}, "name"),
            ({"name": "x" * 121}, "name"),
            ({"workout_template_id": ""}, "workout_template_id"),
            ({"frequency": "yearly"}, "frequency"),
            ({"frequency": Frequency.WEEKLY, "days_of_week": ()}, "days_of_week"),
            ({"frequency": Frequency.WEEKLY, "days_of_week": (1, 7)}, "days_of_week"),
            ({"frequency": Frequency.CUSTOM}, "times_per_week"),
            ({"frequency": Frequency.CUSTOM, "times_per_week": 0}, "times_per_week"),
            ({"frequency": Frequency.CUSTOM, "times_per_week": 8}, "times_per_week"),
            ({"end_date": date(2023, 12, 31)}, "end_date"),
            ({"end_date": date(2027, 6, 1)}, "end_date"),
            ({"end_date": None, "duration_weeks": 0}, "duration_weeks"),
            ({"start_date": "not-a-date"}, "start_date"),
        ],
    )
    def test_rejects(self, generator, overrides, field):
        with pytest.raises(ValidationError) as exc_info:
            generator.validate(spec(**overrides))

        assert exc_info.value.field == field

    def test_iso_strings_accepted(self, generator):
        validated = generator.validate(spec(start_date="2024-01-01", end_date="2024-01-03"))

        assert validated.start_date == date(2024, 1, 1)
        assert validated.end_date == date(2024, 1, 3)


class TestPreview:
    def test_preview_limits_to_weeks(self, generator):
        dates = generator.preview(spec(end_date=None), weeks=1)

        assert len(dates) == 7
        assert dates[0] == date(2024, 1, 1)

    def test_preview_respects_end_date(self, generator):
        dates = generator.preview(spec(end_date=date(2024, 1, 3)), weeks=4)

        assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_preview_weeks_bounded(self, generator):
        with pytest.raises(ValidationError) as exc_info:
            generator.preview(spec(), weeks=53)

        assert exc_info.value.field == "weeks"


class TestPresets:
    @pytest.mark.parametrize("preset", COMMON_PATTERNS, ids=lambda p: p["name"])
    def test_presets_are_valid(self, generator, preset):
        validated = generator.validate(
            RecurringPatternSpec(
                workout_template_id="tmpl_1",
                start_date=date(2024, 1, 1),
                end_date=date(2024, 1, 28),
                **preset,
            )
        )

        assert generator.generate_for_spec(validated)

    def test_occurrence_title(self):
        assert format_occurrence_title("Leg Day", date(2024, 1, 5)) == "Leg Day - Jan 05"
