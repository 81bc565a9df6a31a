"""
In-memory Store adapter.

Dict-backed implementation of the Store port for tests and local
development. Every per-user mutation runs under that user's
``asyncio.Lock``, which gives the same atomicity the SQL adapter gets from
row locks: an XP increment, its level recompute and the streak
compare-and-set are never interleaved with another write for that user.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, DefaultDict, Dict, List, Optional, Sequence, Tuple

from questlog.core.logging.logger import get_logger
from questlog.domain.models import (
    Achievement,
    LeaderboardCandidate,
    LeaderboardMetric,
    RecurringPattern,
    RecurringPatternSpec,
    ScheduledOccurrence,
    UnlockResult,
    UserAchievementUnlock,
    UserGamificationProfile,
    UserStatsSnapshot,
    XPTransaction,
)
from questlog.modules.gamification.level_logic import LevelCurve
from questlog.modules.gamification.streak_logic import ensure_aware
from questlog.modules.shared.constants import ACHIEVEMENT_BONUS_ACTION
from questlog.modules.shared.exceptions import ConflictError, ValidationError
from questlog.store.port import UNCHECKED

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _Goal:
    user_id: str
    module_id: Optional[str]
    is_completed: bool


def _same_instant(left: Optional[datetime], right: Optional[datetime]) -> bool:
    if left is None or right is None:
        return left is right
    return ensure_aware(left) == ensure_aware(right)


class InMemoryStore:
    """
    Store port over plain dictionaries.

    Seeding helpers (``add_achievement``, ``add_goal``, ``set_timezone``)
    stand in for the parts of the application that own those records.
    """

    def __init__(self, level_curve: LevelCurve) -> None:
        self._levels = level_curve
        self._profiles: Dict[str, UserGamificationProfile] = {}
        self._transactions: List[XPTransaction] = []
        self._achievements: Dict[str, Achievement] = {}
        self._unlocks: Dict[Tuple[str, str], UserAchievementUnlock] = {}
        self._goals: List[_Goal] = []
        self._patterns: Dict[str, RecurringPattern] = {}
        self._occurrences: Dict[Tuple[str, date], ScheduledOccurrence] = {}
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ------------------------------------------------------------------ #
    # Seeding & inspection
    # ------------------------------------------------------------------ #

    def add_achievement(self, achievement: Achievement) -> None:
        self._achievements[achievement.id] = achievement

    def add_goal(
        self, user_id: str, module_id: Optional[str] = None, is_completed: bool = False
    ) -> None:
        self._goals.append(_Goal(user_id, module_id, is_completed))

    def set_timezone(self, user_id: str, timezone: str) -> None:
        profile = self._profiles.get(user_id) or UserGamificationProfile(user_id=user_id)
        self._profiles[user_id] = replace(profile, timezone=timezone)

    def put_profile(self, profile: UserGamificationProfile) -> None:
        self._profiles[profile.user_id] = profile

    @property
    def transactions(self) -> List[XPTransaction]:
        return list(self._transactions)

    @property
    def unlocks(self) -> List[UserAchievementUnlock]:
        return list(self._unlocks.values())

    @property
    def occurrences(self) -> List[ScheduledOccurrence]:
        return sorted(self._occurrences.values(), key=lambda item: item.scheduled_date)

    # ------------------------------------------------------------------ #
    # Profiles & XP
    # ------------------------------------------------------------------ #

    def _profile(self, user_id: str) -> UserGamificationProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            profile = UserGamificationProfile(user_id=user_id)
            self._profiles[user_id] = profile
        return profile

    def _add_xp(self, profile: UserGamificationProfile, xp_delta: int) -> UserGamificationProfile:
        total = profile.total_xp + xp_delta
        return replace(
            profile, total_xp=total, current_level=self._levels.level_number(total)
        )

    async def read_profile(self, user_id: str) -> UserGamificationProfile:
        return self._profile(user_id)

    async def atomic_increment_xp_and_streak(
        self,
        user_id: str,
        xp_delta: int,
        new_streak_count: Optional[int],
        new_last_activity_at: Optional[datetime],
        expected_last_activity_at: Any = UNCHECKED,
    ) -> UserGamificationProfile:
        async with self._locks[user_id]:
            profile = self._profile(user_id)
            if new_streak_count is not None and expected_last_activity_at is not UNCHECKED:
                if not _same_instant(profile.last_activity_at, expected_last_activity_at):
                    raise ConflictError(
                        "profile",
                        "last activity changed since the profile was read",
                        identifier=user_id,
                    )

            updated = self._add_xp(profile, xp_delta)
            if new_streak_count is not None:
                updated = replace(
                    updated,
                    streak_count=new_streak_count,
                    last_activity_at=new_last_activity_at,
                )
            self._profiles[user_id] = updated
            return updated

    async def append_transaction(self, transaction: XPTransaction) -> None:
        self._transactions.append(transaction)

    # ------------------------------------------------------------------ #
    # Achievements
    # ------------------------------------------------------------------ #

    async def read_user_stats_snapshot(self, user_id: str) -> UserStatsSnapshot:
        profile = self._profile(user_id)
        goals = [goal for goal in self._goals if goal.user_id == user_id]
        by_module: Dict[str, int] = {}
        for goal in goals:
            if goal.is_completed and goal.module_id:
                by_module[goal.module_id] = by_module.get(goal.module_id, 0) + 1
        return UserStatsSnapshot(
            total_goals=len(goals),
            completed_goals=sum(1 for goal in goals if goal.is_completed),
            completed_goals_by_module=by_module,
            streak_count=profile.streak_count,
            total_xp=profile.total_xp,
        )

    async def list_unlocked_achievement_ids(self, user_id: str) -> List[str]:
        return sorted(
            achievement_id
            for owner, achievement_id in self._unlocks
            if owner == user_id
        )

    async def list_achievements(
        self, module_id: Optional[str] = None
    ) -> Sequence[Achievement]:
        return [
            achievement
            for achievement in self._achievements.values()
            if achievement.module_id is None or achievement.module_id == module_id
        ]

    async def create_unlock_if_absent(
        self,
        user_id: str,
        achievement_id: str,
        unlocked_at: datetime,
        xp_reward: int = 0,
    ) -> UnlockResult:
        async with self._locks[user_id]:
            key = (user_id, achievement_id)
            if key in self._unlocks:
                return UnlockResult(created=False)

            self._unlocks[key] = UserAchievementUnlock(user_id, achievement_id, unlocked_at)
            profile = self._profile(user_id)
            if xp_reward > 0:
                self._transactions.append(
                    XPTransaction(
                        id=uuid.uuid4().hex,
                        user_id=user_id,
                        action_type=ACHIEVEMENT_BONUS_ACTION,
                        xp_awarded=xp_reward,
                        occurred_at=unlocked_at,
                        achievement_id=achievement_id,
                    )
                )
                profile = self._add_xp(profile, xp_reward)
                self._profiles[user_id] = profile
            return UnlockResult(created=True, profile=profile)

    # ------------------------------------------------------------------ #
    # Leaderboard
    # ------------------------------------------------------------------ #

    async def list_users_ranked_by(
        self,
        metric: LeaderboardMetric,
        limit: Optional[int],
        since: Optional[datetime] = None,
    ) -> List[LeaderboardCandidate]:
        if since is not None:
            threshold = ensure_aware(since)
            totals: Dict[str, int] = {}
            for transaction in self._transactions:
                if ensure_aware(transaction.occurred_at) >= threshold:
                    totals[transaction.user_id] = (
                        totals.get(transaction.user_id, 0) + transaction.xp_awarded
                    )
            candidates = [LeaderboardCandidate(user, xp) for user, xp in totals.items()]
        elif metric is LeaderboardMetric.LEVEL:
            candidates = [
                LeaderboardCandidate(profile.user_id, profile.current_level)
                for profile in self._profiles.values()
            ]
        else:
            candidates = [
                LeaderboardCandidate(profile.user_id, profile.total_xp)
                for profile in self._profiles.values()
            ]

        candidates.sort(key=lambda candidate: (-candidate.value, candidate.user_id))
        return candidates if limit is None else candidates[:limit]

    # ------------------------------------------------------------------ #
    # Schedules
    # ------------------------------------------------------------------ #

    async def create_recurring_pattern(
        self, user_id: str, spec: RecurringPatternSpec
    ) -> RecurringPattern:
        if spec.end_date is None:
            raise ValidationError("end_date", "must be resolved before the pattern is stored")
        pattern = RecurringPattern(
            id=uuid.uuid4().hex,
            user_id=user_id,
            name=spec.name,
            workout_template_id=spec.workout_template_id,
            frequency=spec.frequency,
            start_date=spec.start_date,
            end_date=spec.end_date,
            days_of_week=tuple(spec.days_of_week),
            times_per_week=spec.times_per_week,
            duration_weeks=spec.duration_weeks,
            description=spec.description,
            created_at=datetime.now(timezone.utc),
        )
        self._patterns[pattern.id] = pattern
        logger.debug(
            "Recurring pattern stored", extra={"pattern_id": pattern.id, "user_id": user_id}
        )
        return pattern

    async def create_occurrence(
        self, pattern: RecurringPattern, scheduled_date: date, title: str
    ) -> ScheduledOccurrence:
        key = (pattern.id, scheduled_date)
        if key in self._occurrences:
            raise ConflictError(
                "scheduled_occurrence",
                "an occurrence already exists for this date",
                identifier=f"{pattern.id}:{scheduled_date.isoformat()}",
            )
        occurrence = ScheduledOccurrence(
            id=uuid.uuid4().hex,
            pattern_id=pattern.id,
            user_id=pattern.user_id,
            workout_template_id=pattern.workout_template_id,
            scheduled_date=scheduled_date,
            title=title,
        )
        self._occurrences[key] = occurrence
        return occurrence

    def patterns_for(self, user_id: str) -> List[RecurringPattern]:
        return [pattern for pattern in self._patterns.values() if pattern.user_id == user_id]
