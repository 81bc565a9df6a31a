"""
Gamification value types.

Purpose
-------
Immutable dataclasses shared by the gamification services and the store
adapters: profiles, XP transactions, achievement definitions and their
condition union, stats snapshots, and the results returned to callers.

Design Notes
------------
- Achievement conditions are a closed union of small frozen dataclasses,
  one per condition kind, each carrying only the fields it needs.
  ``parse_condition`` is the only way stored JSON becomes a condition.
- Nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from questlog.modules.shared.exceptions import ValidationError


# ============================================================================
# Profiles & Transactions
# ============================================================================


@dataclass(frozen=True, slots=True)
class UserGamificationProfile:
    """Per-user XP, cached level and streak state."""

    user_id: str
    total_xp: int = 0
    current_level: int = 1
    streak_count: int = 0
    last_activity_at: Optional[datetime] = None
    timezone: str = "UTC"


@dataclass(frozen=True, slots=True)
class XPTransaction:
    """Append-only audit record of one XP award."""

    id: str
    user_id: str
    action_type: str
    xp_awarded: int
    occurred_at: datetime
    module_id: Optional[str] = None
    difficulty: Optional[str] = None
    achievement_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UserStatsSnapshot:
    """Read-only statistics an achievement condition is evaluated against."""

    total_goals: int = 0
    completed_goals: int = 0
    completed_goals_by_module: Mapping[str, int] = field(default_factory=dict)
    streak_count: int = 0
    total_xp: int = 0


# ============================================================================
# Achievement Conditions
# ============================================================================


class ConditionType(str, Enum):
    GOAL_CREATED = "goal_created"
    GOALS_COMPLETED = "goals_completed"
    STREAK = "streak"
    MODULE_GOALS_COMPLETED = "module_goals_completed"
    XP_EARNED = "xp_earned"


def _require_positive_threshold(threshold: Any) -> None:
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 1:
        raise ValidationError(
            "condition.threshold", f"must be a positive integer, got {threshold!r}"
        )


@dataclass(frozen=True, slots=True)
class GoalCreatedCondition:
    threshold: int
    type: ConditionType = field(default=ConditionType.GOAL_CREATED, init=False)

    def __post_init__(self) -> None:
        _require_positive_threshold(self.threshold)


@dataclass(frozen=True, slots=True)
class GoalsCompletedCondition:
    threshold: int
    type: ConditionType = field(default=ConditionType.GOALS_COMPLETED, init=False)

    def __post_init__(self) -> None:
        _require_positive_threshold(self.threshold)


@dataclass(frozen=True, slots=True)
class StreakCondition:
    """Satisfied by the *current* streak only; a broken streak starts over."""

    threshold: int
    type: ConditionType = field(default=ConditionType.STREAK, init=False)

    def __post_init__(self) -> None:
        _require_positive_threshold(self.threshold)


@dataclass(frozen=True, slots=True)
class ModuleGoalsCompletedCondition:
    threshold: int
    module_id: str
    type: ConditionType = field(
        default=ConditionType.MODULE_GOALS_COMPLETED, init=False
    )

    def __post_init__(self) -> None:
        _require_positive_threshold(self.threshold)


@dataclass(frozen=True, slots=True)
class XpEarnedCondition:
    threshold: int
    type: ConditionType = field(default=ConditionType.XP_EARNED, init=False)

    def __post_init__(self) -> None:
        _require_positive_threshold(self.threshold)


AchievementCondition = Union[
    GoalCreatedCondition,
    GoalsCompletedCondition,
    StreakCondition,
    ModuleGoalsCompletedCondition,
    XpEarnedCondition,
]

# Keys used by older stored conditions, per kind.
_THRESHOLD_ALIASES: Dict[ConditionType, Tuple[str, ...]] = {
    ConditionType.GOAL_CREATED: ("threshold", "count"),
    ConditionType.GOALS_COMPLETED: ("threshold", "count"),
    ConditionType.STREAK: ("threshold", "days"),
    ConditionType.MODULE_GOALS_COMPLETED: ("threshold", "count"),
    ConditionType.XP_EARNED: ("threshold", "xpAmount", "xp_amount"),
}


def _read_threshold(raw: Mapping[str, Any], kind: ConditionType) -> int:
    for key in _THRESHOLD_ALIASES[kind]:
        if key in raw and raw[key] is not None:
            value = raw[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValidationError(
                    "condition.threshold", f"must be a positive integer, got {value!r}"
                )
            return value
    raise ValidationError("condition.threshold", f"missing for {kind.value} condition")


def parse_condition(raw: Mapping[str, Any]) -> AchievementCondition:
    """
    Build a condition from its stored mapping form.

    Example:
        >>> parse_condition({"type": "streak", "days": 7})
        StreakCondition(threshold=7, type=<ConditionType.STREAK: 'streak'>)
    """
    try:
        kind = ConditionType(raw.get("type"))
    except ValueError:
        raise ValidationError(
            "condition.type", f"unknown condition type {raw.get('type')!r}"
        ) from None

    threshold = _read_threshold(raw, kind)

    if kind is ConditionType.GOAL_CREATED:
        return GoalCreatedCondition(threshold)
    if kind is ConditionType.GOALS_COMPLETED:
        return GoalsCompletedCondition(threshold)
    if kind is ConditionType.STREAK:
        return StreakCondition(threshold)
    if kind is ConditionType.XP_EARNED:
        return XpEarnedCondition(threshold)

    module_id = raw.get("module_id") or raw.get("moduleId") or raw.get("module")
    if not module_id:
        raise ValidationError(
            "condition.module_id", "required for module_goals_completed conditions"
        )
    return ModuleGoalsCompletedCondition(threshold, str(module_id))


def condition_to_dict(condition: AchievementCondition) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": condition.type.value, "threshold": condition.threshold}
    if isinstance(condition, ModuleGoalsCompletedCondition):
        data["module_id"] = condition.module_id
    return data


# ============================================================================
# Achievements
# ============================================================================


class AchievementTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


@dataclass(frozen=True, slots=True)
class Achievement:
    """Administrator-defined, one-time-unlockable reward."""

    id: str
    name: str
    condition: AchievementCondition
    xp_reward: int = 0
    module_id: Optional[str] = None
    description: str = ""
    tier: AchievementTier = AchievementTier.BRONZE


@dataclass(frozen=True, slots=True)
class UserAchievementUnlock:
    user_id: str
    achievement_id: str
    unlocked_at: datetime


@dataclass(frozen=True, slots=True)
class UnlockResult:
    """Outcome of ``create_unlock_if_absent``; ``profile`` is set when XP was added."""

    created: bool
    profile: Optional[UserGamificationProfile] = None


@dataclass(frozen=True, slots=True)
class AchievementProgress:
    achievement: Achievement
    unlocked: bool
    progress: float


# ============================================================================
# Levels & Streaks
# ============================================================================


@dataclass(frozen=True, slots=True)
class LevelInfo:
    level: int
    progress_to_next: float
    total_xp: int
    xp_for_current_level: int
    xp_for_next_level: Optional[int]

    @property
    def is_max_level(self) -> bool:
        return self.xp_for_next_level is None


class StreakStatus(str, Enum):
    STARTED = "started"  # no previous activity
    CONTINUED = "continued"  # activity on the next calendar day
    UNCHANGED = "unchanged"  # another activity on the same day
    RESET = "reset"  # gap of two or more days; previous streak broke
    LAPSED = "lapsed"  # read-only view: no activity today or yesterday


@dataclass(frozen=True, slots=True)
class StreakUpdate:
    streak_count: int
    is_active: bool
    status: StreakStatus
    previous_streak: int = 0

    @property
    def broke(self) -> bool:
        return self.status is StreakStatus.RESET


# ============================================================================
# Action Results
# ============================================================================


class NotificationKind(str, Enum):
    LEVEL_UP = "level_up"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    STREAK_MILESTONE = "streak_milestone"
    STREAK_BROKEN = "streak_broken"


@dataclass(frozen=True, slots=True)
class Notification:
    kind: NotificationKind
    title: str
    message: str
    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """
    Outcome of one processed action.

    ``xp_awarded`` is the action's own award; ``bonus_xp`` is the sum of the
    rewards of achievements unlocked by this action.
    """

    xp_awarded: int
    bonus_xp: int
    total_xp: int
    level: LevelInfo
    leveled_up: bool
    achievements_unlocked: Tuple[Achievement, ...]
    streak_updated: StreakUpdate
    notifications: Tuple[Notification, ...] = ()

    @property
    def unlocked_ids(self) -> FrozenSet[str]:
        return frozenset(achievement.id for achievement in self.achievements_unlocked)


@dataclass(frozen=True, slots=True)
class UserProgress:
    profile: UserGamificationProfile
    level: LevelInfo
    streak: StreakUpdate
