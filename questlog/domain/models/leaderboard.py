"""Leaderboard value types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LeaderboardMetric(str, Enum):
    XP = "xp"
    LEVEL = "level"


@dataclass(frozen=True, slots=True)
class LeaderboardCandidate:
    """Unranked (user, value) pair as returned by the store."""

    user_id: str
    value: int


@dataclass(frozen=True, slots=True)
class RankedEntry:
    user_id: str
    value: int
    rank: int
