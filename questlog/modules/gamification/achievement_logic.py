"""
Achievement condition evaluation.

Pure predicates over a ``UserStatsSnapshot``. The caller filters out
achievements the user already holds; nothing here looks at unlock history.

The streak condition compares against the *current* streak, so a streak
that broke and was rebuilt must reach the threshold again.
"""

from __future__ import annotations

from questlog.domain.models import (
    Achievement,
    AchievementCondition,
    GoalCreatedCondition,
    GoalsCompletedCondition,
    ModuleGoalsCompletedCondition,
    StreakCondition,
    UserStatsSnapshot,
    XpEarnedCondition,
)


class AchievementEvaluator:
    """Evaluates the closed set of achievement condition kinds."""

    @staticmethod
    def current_value(condition: AchievementCondition, stats: UserStatsSnapshot) -> int:
        """The statistic a condition's threshold is compared against."""
        if isinstance(condition, GoalCreatedCondition):
            return stats.total_goals
        if isinstance(condition, GoalsCompletedCondition):
            return stats.completed_goals
        if isinstance(condition, StreakCondition):
            return stats.streak_count
        if isinstance(condition, ModuleGoalsCompletedCondition):
            return stats.completed_goals_by_module.get(condition.module_id, 0)
        if isinstance(condition, XpEarnedCondition):
            return stats.total_xp
        raise TypeError(f"Unsupported achievement condition: {condition!r}")

    def evaluate(self, definition: Achievement, stats: UserStatsSnapshot) -> bool:
        condition = definition.condition
        return self.current_value(condition, stats) >= condition.threshold

    def progress(self, definition: Achievement, stats: UserStatsSnapshot) -> float:
        """Fraction of the threshold reached, capped at 1.0."""
        condition = definition.condition
        return min(1.0, self.current_value(condition, stats) / condition.threshold)
