"""
questlog domain constants.

Purpose
-------
Fixed rules of the domain that are not operator-tunable. Tunable values
(XP tables, thresholds, horizons) live in ConfigManager defaults.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by subsystem
"""

from __future__ import annotations

from typing import Final

# ============================================================================
# XP & LEVELING
# ============================================================================

MIN_XP_AWARD: Final[int] = 1  # Every valid action earns at least this much
MIN_LEVEL: Final[int] = 1
DEFAULT_DIFFICULTY: Final[str] = "medium"

# Transaction action type recorded for achievement bonus XP
ACHIEVEMENT_BONUS_ACTION: Final[str] = "achievement_unlocked"

# ============================================================================
# STREAKS
# ============================================================================

STREAK_START: Final[int] = 1

# ============================================================================
# CALENDAR
# ============================================================================

DAYS_PER_WEEK: Final[int] = 7
MIN_TIMES_PER_WEEK: Final[int] = 1
MAX_TIMES_PER_WEEK: Final[int] = 7

# ============================================================================
# SCHEDULE
# ============================================================================

OCCURRENCE_TITLE_DATE_FORMAT: Final[str] = "%b %d"
MAX_PATTERN_NAME_LENGTH: Final[int] = 120
MAX_DESCRIPTION_LENGTH: Final[int] = 1000
