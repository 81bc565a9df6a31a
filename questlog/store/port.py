"""
Store port.

Purpose
-------
The persistence contract the services depend on. Adapters:

- ``InMemoryStore``: dict-backed, for tests and local development
- ``SqlStore``: SQLAlchemy async on PostgreSQL

Atomicity Contract
------------------
- ``atomic_increment_xp_and_streak`` applies the XP increment, the level
  recompute and (unless ``new_streak_count`` is None) the streak
  compare-and-set as one unit. When ``expected_last_activity_at`` does not
  match the stored value it raises ``ConflictError`` and applies nothing.
- ``create_unlock_if_absent`` inserts the unlock, appends the bonus
  transaction and adds ``xp_reward`` as one unit, or does nothing at all
  when the unlock already exists.
- Any failure to reach the backing store surfaces as
  ``StoreUnavailableError``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from questlog.domain.models import (
    Achievement,
    LeaderboardCandidate,
    LeaderboardMetric,
    RecurringPattern,
    RecurringPatternSpec,
    ScheduledOccurrence,
    UnlockResult,
    UserGamificationProfile,
    UserStatsSnapshot,
    XPTransaction,
)


class _Unchecked:
    """Sentinel: skip the last-activity compare-and-set."""

    _instance: Optional["_Unchecked"] = None

    def __new__(cls) -> "_Unchecked":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNCHECKED"


UNCHECKED: Any = _Unchecked()


@runtime_checkable
class Store(Protocol):
    # ------------------------------------------------------------------ #
    # Profiles & XP
    # ------------------------------------------------------------------ #

    async def read_profile(self, user_id: str) -> UserGamificationProfile:
        """Profile for ``user_id``, created with defaults when absent."""
        ...

    async def atomic_increment_xp_and_streak(
        self,
        user_id: str,
        xp_delta: int,
        new_streak_count: Optional[int],
        new_last_activity_at: Optional[datetime],
        expected_last_activity_at: Any = UNCHECKED,
    ) -> UserGamificationProfile:
        ...

    async def append_transaction(self, transaction: XPTransaction) -> None:
        ...

    # ------------------------------------------------------------------ #
    # Achievements
    # ------------------------------------------------------------------ #

    async def read_user_stats_snapshot(self, user_id: str) -> UserStatsSnapshot:
        ...

    async def list_unlocked_achievement_ids(self, user_id: str) -> List[str]:
        ...

    async def list_achievements(
        self, module_id: Optional[str] = None
    ) -> Sequence[Achievement]:
        """Global achievements plus those scoped to ``module_id``."""
        ...

    async def create_unlock_if_absent(
        self,
        user_id: str,
        achievement_id: str,
        unlocked_at: datetime,
        xp_reward: int = 0,
    ) -> UnlockResult:
        ...

    # ------------------------------------------------------------------ #
    # Leaderboard
    # ------------------------------------------------------------------ #

    async def list_users_ranked_by(
        self,
        metric: LeaderboardMetric,
        limit: Optional[int],
        since: Optional[datetime] = None,
    ) -> List[LeaderboardCandidate]:
        """
        Candidates ordered by value desc, then user_id asc.

        With ``since`` the value is XP earned in transactions at or after it
        (for either metric); ``limit=None`` returns every candidate.
        """
        ...

    # ------------------------------------------------------------------ #
    # Schedules
    # ------------------------------------------------------------------ #

    async def create_recurring_pattern(
        self, user_id: str, spec: RecurringPatternSpec
    ) -> RecurringPattern:
        """Persist ``spec``; ``spec.end_date`` is already resolved."""
        ...

    async def create_occurrence(
        self, pattern: RecurringPattern, scheduled_date: date, title: str
    ) -> ScheduledOccurrence:
        ...
