"""
ActionProcessor - turns one user action into XP, level, streak and unlocks.

Purpose
-------
Orchestrates the gamification engine for a single discrete action
(``create_goal``, ``complete_goal`` ...). Pure rules live in the logic
modules; this service sequences them against the Store port and reports
the outcome.

Domain
------
- Award XP (base value x difficulty multiplier, at least 1)
- Advance the daily streak
- Unlock newly satisfied achievements and grant their bonus XP
- Build user-facing notifications and publish domain events

Concurrency
-----------
Two actions for the same user may run concurrently. The store applies the
XP increment and the streak compare-and-set atomically; when another action
changed the streak first the store raises ``ConflictError``, and the
profile is re-read and the streak recomputed once. A second conflict falls
back to an XP-only increment, so base XP is never lost. Duplicate unlocks
are rejected by the store and skipped here.

Events
------
- ``gamification.xp_awarded``
- ``gamification.leveled_up``
- ``gamification.achievement_unlocked``
- ``gamification.streak_broken``
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from questlog.core.logging.logger import LogContext
from questlog.core.validation.input_validator import InputValidator
from questlog.domain.models import (
    Achievement,
    AchievementProgress,
    LevelInfo,
    Notification,
    NotificationKind,
    ProcessResult,
    StreakStatus,
    StreakUpdate,
    UserGamificationProfile,
    UserProgress,
    XPTransaction,
)
from questlog.modules.gamification.streak_logic import ensure_aware
from questlog.modules.shared.base_service import BaseService
from questlog.modules.shared.constants import DEFAULT_DIFFICULTY
from questlog.modules.shared.exceptions import ConflictError, ValidationError
from questlog.modules.shared.formulas import calculate_xp_award

if TYPE_CHECKING:
    from logging import Logger

    from questlog.core.config.manager import ConfigManager
    from questlog.core.event.bus import EventBus
    from questlog.modules.gamification.achievement_logic import AchievementEvaluator
    from questlog.modules.gamification.level_logic import LevelCurve
    from questlog.modules.gamification.streak_logic import Clock, StreakTracker
    from questlog.store.port import Store


class ActionProcessor(BaseService):
    """
    Gamification orchestrator.

    Public Methods
    --------------
    - process() -> Award XP for an action, advance the streak, unlock achievements
    - get_progress() -> Current level and streak view for a user
    - get_achievement_progress() -> Unlock state and progress per achievement
    """

    def __init__(
        self,
        store: Store,
        level_curve: LevelCurve,
        streak_tracker: StreakTracker,
        evaluator: AchievementEvaluator,
        clock: Clock,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._levels = level_curve
        self._streaks = streak_tracker
        self._evaluator = evaluator
        self._clock = clock

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def process(
        self,
        user_id: str,
        action_type: str,
        module_id: Optional[str] = None,
        difficulty: Optional[str] = DEFAULT_DIFFICULTY,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> ProcessResult:
        """
        Award XP for one action and apply every follow-on effect.

        Args:
            user_id: Acting user
            action_type: Key of the base XP table (e.g. ``complete_goal``)
            module_id: Module the action belongs to; scopes module achievements
            difficulty: Key of the multiplier table; defaults to ``medium``
            metadata: Free-form data stored on the XP transaction

        Returns:
            ProcessResult with the base award, bonus XP, final level, streak
            update, unlocked achievements and notifications

        Raises:
            ValidationError: Unknown action type or difficulty, malformed ids.
                Raised before anything is written.
            StoreUnavailableError: The store could not be reached
        """
        user_id, action_type, module_id, difficulty, metadata = self._validate_action(
            user_id, action_type, module_id, difficulty, metadata
        )
        xp_awarded = calculate_xp_award(
            self._base_xp_table()[action_type],
            self._multiplier_table()[difficulty],
        )
        now = self._clock.now()

        async with LogContext(user_id=user_id, operation="process_action"):
            self.log_operation(
                "process_action",
                action_type=action_type,
                module_id=module_id,
                difficulty=difficulty,
                xp_awarded=xp_awarded,
            )

            await self._store.append_transaction(
                XPTransaction(
                    id=uuid.uuid4().hex,
                    user_id=user_id,
                    action_type=action_type,
                    xp_awarded=xp_awarded,
                    occurred_at=now,
                    module_id=module_id,
                    difficulty=difficulty,
                    metadata=metadata,
                )
            )

            profile, streak = await self._apply_base_award(user_id, xp_awarded, now)
            old_level = self._levels.level_number(profile.total_xp - xp_awarded)

            unlocked, bonus_xp, profile = await self._unlock_achievements(
                user_id, module_id, now, profile
            )

            level = self._levels.level_for(profile.total_xp)
            leveled_up = level.level > old_level

            result = ProcessResult(
                xp_awarded=xp_awarded,
                bonus_xp=bonus_xp,
                total_xp=profile.total_xp,
                level=level,
                leveled_up=leveled_up,
                achievements_unlocked=tuple(unlocked),
                streak_updated=streak,
                notifications=tuple(
                    self._build_notifications(old_level, level, leveled_up, unlocked, streak)
                ),
            )

            await self._publish_events(user_id, action_type, module_id, old_level, result)
            return result

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_progress(self, user_id: str) -> UserProgress:
        """Level and streak as of now. A lapsed streak reads as 0."""
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        profile = await self._store.read_profile(user_id)
        return UserProgress(
            profile=profile,
            level=self._levels.level_for(profile.total_xp),
            streak=self._streaks.status_of(
                profile.streak_count,
                profile.last_activity_at,
                now=self._clock.now(),
                timezone=profile.timezone,
            ),
        )

    async def get_achievement_progress(
        self, user_id: str, module_id: Optional[str] = None
    ) -> List[AchievementProgress]:
        """
        Unlock state and progress for every achievement visible in ``module_id``.

        Unlocked achievements report progress 1.0.
        """
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        if module_id is not None:
            module_id = InputValidator.validate_identifier(module_id, "module_id")

        stats = await self._store.read_user_stats_snapshot(user_id)
        unlocked_ids = set(await self._store.list_unlocked_achievement_ids(user_id))
        achievements = await self._store.list_achievements(module_id)

        return [
            AchievementProgress(
                achievement=achievement,
                unlocked=achievement.id in unlocked_ids,
                progress=(
                    1.0
                    if achievement.id in unlocked_ids
                    else self._evaluator.progress(achievement, stats)
                ),
            )
            for achievement in achievements
        ]

    # ========================================================================
    # PRIVATE - Validation & Config
    # ========================================================================

    def _base_xp_table(self) -> Dict[str, int]:
        return self.require_config("gamification.xp.base")

    def _multiplier_table(self) -> Dict[str, float]:
        return self.require_config("gamification.xp.difficulty_multipliers")

    def _validate_action(
        self,
        user_id: Any,
        action_type: Any,
        module_id: Any,
        difficulty: Any,
        metadata: Any,
    ) -> Tuple[str, str, Optional[str], str, Dict[str, Any]]:
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        action_type = InputValidator.validate_choice(
            action_type, "action_type", self._base_xp_table().keys()
        )
        if module_id is not None:
            module_id = InputValidator.validate_identifier(module_id, "module_id")
        if difficulty is None:
            difficulty = self.get_config(
                "gamification.xp.default_difficulty", DEFAULT_DIFFICULTY
            )
        difficulty = InputValidator.validate_choice(
            difficulty, "difficulty", self._multiplier_table().keys()
        )
        if metadata is not None and not isinstance(metadata, Mapping):
            raise ValidationError("metadata", "Must be a mapping")
        return user_id, action_type, module_id, difficulty, dict(metadata or {})

    # ========================================================================
    # PRIVATE - Base Award
    # ========================================================================

    async def _apply_base_award(
        self, user_id: str, xp_delta: int, now: datetime
    ) -> Tuple[UserGamificationProfile, StreakUpdate]:
        """
        Increment XP and advance the streak; retry once on a streak conflict,
        then fall back to an XP-only increment.
        """
        for attempt in (1, 2):
            before = await self._store.read_profile(user_id)
            streak = self._streaks.advance(
                before.streak_count,
                before.last_activity_at,
                now=now,
                timezone=before.timezone,
            )
            new_last_activity = now
            if before.last_activity_at is not None:
                new_last_activity = max(now, ensure_aware(before.last_activity_at))

            try:
                profile = await self._store.atomic_increment_xp_and_streak(
                    user_id,
                    xp_delta,
                    streak.streak_count,
                    new_last_activity,
                    expected_last_activity_at=before.last_activity_at,
                )
                return profile, streak
            except ConflictError as exc:
                self.log.warning(
                    "Streak update lost a race; re-reading profile",
                    extra={
                        "user_id": user_id,
                        "attempt": attempt,
                        "error_code": exc.error_code,
                    },
                )

        profile = await self._store.atomic_increment_xp_and_streak(
            user_id, xp_delta, None, None
        )
        self.log.warning(
            "Streak left to the concurrent action; XP applied without streak update",
            extra={"user_id": user_id, "xp_delta": xp_delta},
        )
        return profile, self._streaks.status_of(
            profile.streak_count,
            profile.last_activity_at,
            now=now,
            timezone=profile.timezone,
        )

    # ========================================================================
    # PRIVATE - Achievements
    # ========================================================================

    async def _unlock_achievements(
        self,
        user_id: str,
        module_id: Optional[str],
        now: datetime,
        profile: UserGamificationProfile,
    ) -> Tuple[List[Achievement], int, UserGamificationProfile]:
        stats = await self._store.read_user_stats_snapshot(user_id)
        unlocked_ids = set(await self._store.list_unlocked_achievement_ids(user_id))
        candidates = await self._store.list_achievements(module_id)

        unlocked: List[Achievement] = []
        bonus_xp = 0
        for achievement in candidates:
            if achievement.id in unlocked_ids:
                continue
            if not self._evaluator.evaluate(achievement, stats):
                continue

            try:
                outcome = await self._store.create_unlock_if_absent(
                    user_id,
                    achievement.id,
                    now,
                    xp_reward=achievement.xp_reward,
                )
            except ConflictError as exc:
                self.log.warning(
                    "Achievement unlock conflicted; skipping bonus",
                    extra={
                        "user_id": user_id,
                        "achievement_id": achievement.id,
                        "error_code": exc.error_code,
                    },
                )
                continue

            if not outcome.created:
                self.log.debug(
                    "Achievement already unlocked by a concurrent action",
                    extra={"user_id": user_id, "achievement_id": achievement.id},
                )
                continue

            unlocked.append(achievement)
            unlocked_ids.add(achievement.id)
            bonus_xp += achievement.xp_reward
            if outcome.profile is not None:
                profile = outcome.profile

            self.log.info(
                "Achievement unlocked",
                extra={
                    "user_id": user_id,
                    "achievement_id": achievement.id,
                    "xp_reward": achievement.xp_reward,
                },
            )

        return unlocked, bonus_xp, profile

    # ========================================================================
    # PRIVATE - Notifications & Events
    # ========================================================================

    def _build_notifications(
        self,
        old_level: int,
        level: LevelInfo,
        leveled_up: bool,
        unlocked: List[Achievement],
        streak: StreakUpdate,
    ) -> List[Notification]:
        notifications: List[Notification] = []

        if leveled_up:
            notifications.append(
                Notification(
                    kind=NotificationKind.LEVEL_UP,
                    title="Level Up!",
                    message=f"You reached level {level.level}!",
                    data={"level": level.level, "previous_level": old_level},
                )
            )

        for achievement in unlocked:
            message = f"You unlocked '{achievement.name}'"
            if achievement.xp_reward:
                message += f" and earned {achievement.xp_reward} bonus XP"
            notifications.append(
                Notification(
                    kind=NotificationKind.ACHIEVEMENT_UNLOCKED,
                    title="Achievement Unlocked!",
                    message=message + ".",
                    data={
                        "achievement_id": achievement.id,
                        "xp_reward": achievement.xp_reward,
                        "tier": achievement.tier.value,
                    },
                )
            )

        interval = int(self.get_config("gamification.streak.milestone_interval_days", 7))
        advanced = streak.status in (StreakStatus.STARTED, StreakStatus.CONTINUED)
        if advanced and interval > 0 and streak.streak_count % interval == 0:
            notifications.append(
                Notification(
                    kind=NotificationKind.STREAK_MILESTONE,
                    title="Streak Milestone!",
                    message=f"{streak.streak_count} day streak! Keep it up!",
                    data={"streak_count": streak.streak_count},
                )
            )

        if streak.broke and streak.previous_streak > 0:
            notifications.append(
                Notification(
                    kind=NotificationKind.STREAK_BROKEN,
                    title="Streak Ended",
                    message=(
                        f"Your {streak.previous_streak} day streak ended. "
                        "A new one starts today."
                    ),
                    data={"previous_streak": streak.previous_streak},
                )
            )

        return notifications

    async def _publish_events(
        self,
        user_id: str,
        action_type: str,
        module_id: Optional[str],
        old_level: int,
        result: ProcessResult,
    ) -> None:
        await self.emit_event(
            "gamification.xp_awarded",
            {
                "user_id": user_id,
                "action_type": action_type,
                "module_id": module_id,
                "xp_awarded": result.xp_awarded,
                "bonus_xp": result.bonus_xp,
                "total_xp": result.total_xp,
            },
        )
        if result.leveled_up:
            await self.emit_event(
                "gamification.leveled_up",
                {
                    "user_id": user_id,
                    "previous_level": old_level,
                    "new_level": result.level.level,
                },
            )
        for achievement in result.achievements_unlocked:
            await self.emit_event(
                "gamification.achievement_unlocked",
                {
                    "user_id": user_id,
                    "achievement_id": achievement.id,
                    "xp_reward": achievement.xp_reward,
                },
            )
        if result.streak_updated.broke:
            await self.emit_event(
                "gamification.streak_broken",
                {
                    "user_id": user_id,
                    "previous_streak": result.streak_updated.previous_streak,
                },
            )
