"""
questlog formulas

Purpose
-------
Pure calculation functions behind the gamification and schedule rules:
XP awards, the level curve, progress fractions, and Sunday-based calendar
arithmetic.

Design Notes
------------
All formulas:
- Accept parameters explicitly (no config access)
- Return calculated values
- Have no side effects
- Are deterministic

Usage
-----
    from questlog.modules.shared.formulas import calculate_xp_award

    xp = calculate_xp_award(base_xp=10, multiplier=1.5)
"""

from __future__ import annotations

import math
from bisect import bisect_right
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

from .constants import MIN_XP_AWARD


# ============================================================================
# XP
# ============================================================================


def calculate_xp_award(base_xp: int, multiplier: float) -> int:
    """
    XP for one action: ``floor(base * multiplier)``, never below 1.

    The product is computed in decimal so multipliers such as 1.1 do not
    lose a point to binary rounding.

    Example:
        >>> calculate_xp_award(5, 1.5)
        7
        >>> calculate_xp_award(1, 1.0)
        1
        >>> calculate_xp_award(15, 3)
        45
    """
    product = Decimal(base_xp) * Decimal(str(multiplier))
    return max(MIN_XP_AWARD, math.floor(product))


# ============================================================================
# LEVEL CURVE
# ============================================================================


def build_level_starts(thresholds: Sequence[int], max_level: int) -> List[int]:
    """
    Cumulative XP at which each level starts, index 0 being level 1.

    ``thresholds`` lists the XP needed for level 2, 3, ... When the table is
    shorter than ``max_level`` the curve keeps going: each further level
    costs the previous increment plus the table's last growth step.

    Example:
        >>> build_level_starts([100, 250, 500], 5)
        [0, 100, 250, 500, 850]
        >>> build_level_starts([100, 250, 500, 1000], 3)
        [0, 100, 250]
    """
    starts = [0, *thresholds][:max_level]
    if len(starts) >= max_level:
        return starts

    increments = [b - a for a, b in zip(starts, starts[1:])]
    last_increment = increments[-1] if increments else 100
    growth = increments[-1] - increments[-2] if len(increments) >= 2 else 0

    while len(starts) < max_level:
        last_increment += growth
        starts.append(starts[-1] + max(1, last_increment))
    return starts


def calculate_level_from_starts(total_xp: int, level_starts: Sequence[int]) -> int:
    """
    Level reached with ``total_xp``: the number of level starts at or below it.

    Example:
        >>> calculate_level_from_starts(0, [0, 100, 250])
        1
        >>> calculate_level_from_starts(100, [0, 100, 250])
        2
        >>> calculate_level_from_starts(9999, [0, 100, 250])
        3
    """
    return max(1, bisect_right(level_starts, total_xp))


def calculate_progress_fraction(
    total_xp: int, current_start: int, next_start: Optional[int]
) -> float:
    """
    Fraction of the way from the current level to the next, in ``[0, 1)``.

    At the maximum level (``next_start is None``) progress is 0.0.

    Example:
        >>> calculate_progress_fraction(175, 100, 250)
        0.5
        >>> calculate_progress_fraction(50_000, 43_000, None)
        0.0
    """
    if next_start is None or next_start <= current_start:
        return 0.0
    fraction = (total_xp - current_start) / (next_start - current_start)
    return min(max(fraction, 0.0), math.nextafter(1.0, 0.0))


# ============================================================================
# CALENDAR
# ============================================================================


def sunday_weekday(day: date) -> int:
    """
    Weekday number with 0=Sunday .. 6=Saturday.

    Example:
        >>> sunday_weekday(date(2024, 1, 7))  # a Sunday
        0
        >>> sunday_weekday(date(2024, 1, 1))  # a Monday
        1
    """
    return (day.weekday() + 1) % 7


def start_of_week(day: date) -> date:
    """
    The Sunday on or before ``day``.

    Example:
        >>> start_of_week(date(2024, 1, 3))
        datetime.date(2023, 12, 31)
    """
    return day - timedelta(days=sunday_weekday(day))


def calendar_day_gap(earlier: date, later: date) -> int:
    """
    Whole calendar days from ``earlier`` to ``later``.

    Example:
        >>> calendar_day_gap(date(2024, 1, 1), date(2024, 1, 2))
        1
    """
    return (later - earlier).days
