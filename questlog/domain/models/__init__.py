"""
Domain value types.

- **gamification.py**: profiles, transactions, achievements, results
- **schedule.py**: recurring patterns and occurrences
- **leaderboard.py**: ranking inputs and outputs
"""

from questlog.domain.models.gamification import (
    Achievement,
    AchievementCondition,
    AchievementProgress,
    AchievementTier,
    ConditionType,
    GoalCreatedCondition,
    GoalsCompletedCondition,
    LevelInfo,
    ModuleGoalsCompletedCondition,
    Notification,
    NotificationKind,
    ProcessResult,
    StreakCondition,
    StreakStatus,
    StreakUpdate,
    UnlockResult,
    UserAchievementUnlock,
    UserGamificationProfile,
    UserProgress,
    UserStatsSnapshot,
    XPTransaction,
    XpEarnedCondition,
    condition_to_dict,
    parse_condition,
)
from questlog.domain.models.leaderboard import (
    LeaderboardCandidate,
    LeaderboardMetric,
    RankedEntry,
)
from questlog.domain.models.schedule import (
    Frequency,
    MaterializationResult,
    OccurrenceFailure,
    RecurringPattern,
    RecurringPatternSpec,
    ScheduledOccurrence,
)

__all__ = [
    "Achievement",
    "AchievementCondition",
    "AchievementProgress",
    "AchievementTier",
    "ConditionType",
    "GoalCreatedCondition",
    "GoalsCompletedCondition",
    "LevelInfo",
    "ModuleGoalsCompletedCondition",
    "Notification",
    "NotificationKind",
    "ProcessResult",
    "StreakCondition",
    "StreakStatus",
    "StreakUpdate",
    "UnlockResult",
    "UserAchievementUnlock",
    "UserGamificationProfile",
    "UserProgress",
    "UserStatsSnapshot",
    "XPTransaction",
    "XpEarnedCondition",
    "condition_to_dict",
    "parse_condition",
    "LeaderboardCandidate",
    "LeaderboardMetric",
    "RankedEntry",
    "Frequency",
    "MaterializationResult",
    "OccurrenceFailure",
    "RecurringPattern",
    "RecurringPatternSpec",
    "ScheduledOccurrence",
]
