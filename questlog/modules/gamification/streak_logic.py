"""
Daily-activity streaks.

Purpose
-------
Decides how one new activity changes a user's streak. Gaps are measured in
the user's local calendar days, so two activities twenty hours apart can be
the same day (no change) or consecutive days (increment) depending on
whether they straddle local midnight.

Design Notes
------------
- Pure apart from the injected ``Clock``; tests pass a fixed clock.
- Stored datetimes without tzinfo are read as UTC.
- A gap of two or more days resets the streak to 1 and reports
  ``StreakStatus.RESET`` with the broken streak in ``previous_streak``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from questlog.domain.models import StreakStatus, StreakUpdate
from questlog.modules.shared.constants import STREAK_START
from questlog.modules.shared.exceptions import ValidationError
from questlog.modules.shared.formulas import calendar_day_gap


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time as an aware datetime."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(dt_timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=dt_timezone.utc)
    return moment


class StreakTracker:
    """
    Streak transitions on local calendar days.

    Example:
        >>> tracker = StreakTracker(SystemClock())
        >>> update = tracker.advance(
        ...     3,
        ...     datetime(2024, 3, 9, 23, 0, tzinfo=dt_timezone.utc),
        ...     now=datetime(2024, 3, 10, 7, 0, tzinfo=dt_timezone.utc),
        ... )
        >>> update.streak_count, update.status.value
        (4, 'continued')
    """

    def __init__(self, clock: Clock, default_timezone: str = "UTC") -> None:
        self._clock = clock
        self._default_zone = self._zone(default_timezone)

    @staticmethod
    def _zone(name: str) -> ZoneInfo:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError("timezone", f"unknown timezone {name!r}") from exc

    def _local_date(self, moment: datetime, zone: ZoneInfo) -> date:
        return ensure_aware(moment).astimezone(zone).date()

    def _day_gap(
        self,
        last_activity_at: datetime,
        now: Optional[datetime],
        timezone: Optional[str],
    ) -> int:
        zone = self._zone(timezone) if timezone else self._default_zone
        current = now if now is not None else self._clock.now()
        return calendar_day_gap(
            self._local_date(last_activity_at, zone),
            self._local_date(current, zone),
        )

    def advance(
        self,
        current_streak: int,
        last_activity_at: Optional[datetime],
        now: Optional[datetime] = None,
        timezone: Optional[str] = None,
    ) -> StreakUpdate:
        """Streak after one more activity at ``now`` (defaults to the clock)."""
        if last_activity_at is None:
            return StreakUpdate(
                streak_count=STREAK_START,
                is_active=True,
                status=StreakStatus.STARTED,
                previous_streak=current_streak,
            )

        gap = self._day_gap(last_activity_at, now, timezone)

        # Activity dated in the future (clock skew) counts as the same day.
        if gap <= 0:
            return StreakUpdate(
                streak_count=max(current_streak, STREAK_START),
                is_active=True,
                status=StreakStatus.UNCHANGED,
                previous_streak=current_streak,
            )
        if gap == 1:
            return StreakUpdate(
                streak_count=current_streak + 1,
                is_active=True,
                status=StreakStatus.CONTINUED,
                previous_streak=current_streak,
            )
        return StreakUpdate(
            streak_count=STREAK_START,
            is_active=True,
            status=StreakStatus.RESET,
            previous_streak=current_streak,
        )

    def status_of(
        self,
        streak_count: int,
        last_activity_at: Optional[datetime],
        now: Optional[datetime] = None,
        timezone: Optional[str] = None,
    ) -> StreakUpdate:
        """
        Read-only view of a stored streak.

        Active when the last activity was today or yesterday; otherwise the
        streak reads as 0 and ``previous_streak`` keeps the stored count.
        """
        if last_activity_at is not None:
            gap = self._day_gap(last_activity_at, now, timezone)
            if gap <= 1:
                return StreakUpdate(
                    streak_count=streak_count,
                    is_active=streak_count > 0,
                    status=StreakStatus.UNCHANGED,
                    previous_streak=streak_count,
                )
        return StreakUpdate(
            streak_count=0,
            is_active=False,
            status=StreakStatus.LAPSED,
            previous_streak=streak_count,
        )
