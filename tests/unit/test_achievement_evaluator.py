"""
Unit tests for achievement conditions: parsing stored JSON and evaluating
against a stats snapshot.
"""

import pytest

from questlog.domain.models import (
    Achievement,
    GoalCreatedCondition,
    GoalsCompletedCondition,
    ModuleGoalsCompletedCondition,
    StreakCondition,
    UserStatsSnapshot,
    XpEarnedCondition,
    condition_to_dict,
    parse_condition,
)
from questlog.modules.gamification import AchievementEvaluator
from questlog.modules.shared.exceptions import ValidationError

pytestmark = pytest.mark.unit


def achievement(condition, **kwargs) -> Achievement:
    return Achievement(id="a1", name="Test", condition=condition, **kwargs)


@pytest.fixture
def evaluator():
    return AchievementEvaluator()


@pytest.fixture
def stats():
    return UserStatsSnapshot(
        total_goals=5,
        completed_goals=3,
        completed_goals_by_module={"fitness": 2},
        streak_count=6,
        total_xp=420,
    )


class TestParseCondition:
    """Stored condition JSON to typed condition."""

    def test_canonical_form(self):
        assert parse_condition({"type": "goals_completed", "threshold": 10}) == (
            GoalsCompletedCondition(10)
        )

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ({"type": "goal_created", "count": 1}, GoalCreatedCondition(1)),
            ({"type": "streak", "days": 7}, StreakCondition(7)),
            ({"type": "xp_earned", "xpAmount": 1000}, XpEarnedCondition(1000)),
            (
                {"type": "module_goals_completed", "count": 3, "moduleId": "fitness"},
                ModuleGoalsCompletedCondition(3, "fitness"),
            ),
        ],
    )
    def test_legacy_keys(self, raw, expected):
        assert parse_condition(raw) == expected

    def test_module_condition_survives_serialization(self):
        condition = ModuleGoalsCompletedCondition(3, "fitness")

        assert parse_condition(condition_to_dict(condition)) == condition

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_condition({"type": "moon_landing", "threshold": 1})

        assert exc_info.value.field == "condition.type"

    def test_missing_module_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_condition({"type": "module_goals_completed", "threshold": 1})

        assert exc_info.value.field == "condition.module_id"

    @pytest.mark.parametrize("threshold", [0, -3, "5", True, None])
    def test_bad_threshold_rejected(self, threshold):
        with pytest.raises(ValidationError) as exc_info:
            parse_condition({"type": "streak", "threshold": threshold})

        assert exc_info.value.field == "condition.threshold"


class TestEvaluate:
    """Each condition kind against the same snapshot."""

    @pytest.mark.parametrize(
        "condition,expected",
        [
            (GoalCreatedCondition(5), True),
            (GoalCreatedCondition(6), False),
            (GoalsCompletedCondition(3), True),
            (GoalsCompletedCondition(4), False),
            (StreakCondition(6), True),
            (StreakCondition(7), False),
            (ModuleGoalsCompletedCondition(2, "fitness"), True),
            (ModuleGoalsCompletedCondition(1, "reading"), False),
            (XpEarnedCondition(420), True),
            (XpEarnedCondition(421), False),
        ],
    )
    def test_threshold_comparison(self, evaluator, stats, condition, expected):
        assert evaluator.evaluate(achievement(condition), stats) is expected

    def test_streak_uses_current_streak_only(self, evaluator):
        """A streak of 30 that broke and restarted at 1 does not satisfy 7."""
        snapshot = UserStatsSnapshot(streak_count=1)

        assert evaluator.evaluate(achievement(StreakCondition(7)), snapshot) is False


class TestProgress:
    def test_partial_progress(self, evaluator, stats):
        progress = evaluator.progress(achievement(GoalsCompletedCondition(12)), stats)

        assert progress == pytest.approx(0.25)

    def test_progress_capped_at_one(self, evaluator, stats):
        assert evaluator.progress(achievement(GoalCreatedCondition(1)), stats) == 1.0


class TestConditionConstruction:
    @pytest.mark.parametrize(
        "build",
        [
            lambda t: GoalCreatedCondition(t),
            lambda t: GoalsCompletedCondition(t),
            lambda t: StreakCondition(t),
            lambda t: ModuleGoalsCompletedCondition(t, "fitness"),
            lambda t: XpEarnedCondition(t),
        ],
    )
    @pytest.mark.parametrize("threshold", [0, -1])
    def test_non_positive_threshold_rejected(self, build, threshold):
        with pytest.raises(ValidationError) as exc_info:
            build(threshold)

        assert exc_info.value.field == "condition.threshold"

    def test_smallest_threshold_progress(self, evaluator):
        empty = UserStatsSnapshot()

        assert evaluator.progress(achievement(GoalCreatedCondition(1)), empty) == 0.0
