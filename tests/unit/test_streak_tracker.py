"""
Unit tests for StreakTracker.

All tests run against the fixed clock at 2024-03-10 12:00 UTC.
"""

from datetime import datetime, timezone

import pytest

from questlog.domain.models import StreakStatus
from questlog.modules.shared.exceptions import ValidationError

pytestmark = pytest.mark.unit


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestAdvance:
    """Streak transitions for one new activity."""

    def test_first_activity_starts_streak(self, streak_tracker):
        update = streak_tracker.advance(0, None)

        assert update.streak_count == 1
        assert update.is_active is True
        assert update.status is StreakStatus.STARTED

    def test_same_day_leaves_streak_unchanged(self, streak_tracker):
        update = streak_tracker.advance(3, utc(2024, 3, 10, 8, 0))

        assert update.streak_count == 3
        assert update.status is StreakStatus.UNCHANGED

    def test_same_day_with_zero_count_reports_one(self, streak_tracker):
        update = streak_tracker.advance(0, utc(2024, 3, 10, 8, 0))

        assert update.streak_count == 1

    def test_next_day_continues(self, streak_tracker):
        """Thirteen hours apart but across midnight counts as consecutive."""
        update = streak_tracker.advance(3, utc(2024, 3, 9, 23, 0))

        assert update.streak_count == 4
        assert update.status is StreakStatus.CONTINUED
        assert update.broke is False

    def test_gap_resets_and_reports_broken_streak(self, streak_tracker):
        update = streak_tracker.advance(5, utc(2024, 3, 7, 12, 0))

        assert update.streak_count == 1
        assert update.status is StreakStatus.RESET
        assert update.broke is True
        assert update.previous_streak == 5

    def test_naive_datetimes_read_as_utc(self, streak_tracker):
        update = streak_tracker.advance(2, datetime(2024, 3, 9, 12, 0))

        assert update.status is StreakStatus.CONTINUED

    def test_future_activity_counts_as_same_day(self, streak_tracker):
        update = streak_tracker.advance(4, utc(2024, 3, 11, 9, 0))

        assert update.status is StreakStatus.UNCHANGED
        assert update.streak_count == 4

    def test_explicit_now_overrides_clock(self, streak_tracker):
        update = streak_tracker.advance(
            1, utc(2024, 3, 10, 8, 0), now=utc(2024, 3, 11, 8, 0)
        )

        assert update.status is StreakStatus.CONTINUED


class TestTimezones:
    """Gaps are measured in the user's local calendar."""

    def test_local_midnight_decides_the_gap(self, streak_tracker):
        # 02:00 UTC on the 10th is still the evening of the 9th in New York.
        last = utc(2024, 3, 10, 2, 0)

        in_utc = streak_tracker.advance(2, last)
        in_new_york = streak_tracker.advance(2, last, timezone="America/New_York")

        assert in_utc.status is StreakStatus.UNCHANGED
        assert in_new_york.status is StreakStatus.CONTINUED
        assert in_new_york.streak_count == 3

    def test_unknown_timezone_rejected(self, streak_tracker):
        with pytest.raises(ValidationError) as exc_info:
            streak_tracker.advance(1, utc(2024, 3, 9, 12, 0), timezone="Mars/Olympus")

        assert exc_info.value.field == "timezone"


class TestStatusOf:
    """Read-only streak view used by progress queries."""

    def test_activity_yesterday_is_still_active(self, streak_tracker):
        status = streak_tracker.status_of(4, utc(2024, 3, 9, 20, 0))

        assert status.streak_count == 4
        assert status.is_active is True

    def test_older_activity_has_lapsed(self, streak_tracker):
        status = streak_tracker.status_of(5, utc(2024, 3, 7, 20, 0))

        assert status.streak_count == 0
        assert status.is_active is False
        assert status.status is StreakStatus.LAPSED
        assert status.previous_streak == 5

    def test_no_activity_reads_as_lapsed(self, streak_tracker):
        status = streak_tracker.status_of(0, None)

        assert status.streak_count == 0
        assert status.is_active is False
