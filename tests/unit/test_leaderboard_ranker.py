"""
Unit tests for LeaderboardRanker.

Ranks are dense and 1-based; ties are ordered by user id ascending.
"""

import uuid
from datetime import timedelta

import pytest

from questlog.domain.models import (
    LeaderboardCandidate,
    UserGamificationProfile,
    XPTransaction,
)
from questlog.modules.leaderboard import assign_dense_ranks
from questlog.modules.shared.exceptions import ValidationError

pytestmark = pytest.mark.unit


def as_rows(entries):
    return [(entry.user_id, entry.value, entry.rank) for entry in entries]


@pytest.fixture
def seed_profiles(store, level_curve):
    def seed(**totals):
        for user_id, total_xp in totals.items():
            store.put_profile(
                UserGamificationProfile(
                    user_id,
                    total_xp=total_xp,
                    current_level=level_curve.level_number(total_xp),
                )
            )

    return seed


@pytest.fixture
def seed_transaction(store, clock):
    async def seed(user_id, xp, days_ago):
        await store.append_transaction(
            XPTransaction(
                id=uuid.uuid4().hex,
                user_id=user_id,
                action_type="complete_goal",
                xp_awarded=xp,
                occurred_at=clock.now() - timedelta(days=days_ago),
            )
        )

    return seed


class TestDenseRanks:
    def test_ties_share_rank(self):
        entries = assign_dense_ranks(
            [
                LeaderboardCandidate("a", 100),
                LeaderboardCandidate("b", 300),
                LeaderboardCandidate("c", 200),
                LeaderboardCandidate("d", 300),
            ]
        )

        assert as_rows(entries) == [
            ("b", 300, 1),
            ("d", 300, 1),
            ("c", 200, 2),
            ("a", 100, 3),
        ]

    def test_empty(self):
        assert assign_dense_ranks([]) == []


@pytest.mark.asyncio
class TestLifetimeRankings:
    async def test_rank_by_xp(self, ranker, seed_profiles):
        seed_profiles(a=100, b=300, c=200, d=300)

        entries = await ranker.rank("xp", limit=10)

        assert as_rows(entries) == [
            ("b", 300, 1),
            ("d", 300, 1),
            ("c", 200, 2),
            ("a", 100, 3),
        ]

    async def test_limit_truncates(self, ranker, seed_profiles):
        seed_profiles(a=100, b=300, c=200, d=300)

        entries = await ranker.rank("xp", limit=2)

        assert [entry.user_id for entry in entries] == ["b", "d"]

    async def test_default_limit(self, ranker, seed_profiles):
        seed_profiles(**{f"u{index:02d}": index * 10 for index in range(15)})

        entries = await ranker.rank("xp")

        assert len(entries) == 10
        assert entries[0].user_id == "u14"

    async def test_rank_by_level(self, ranker, seed_profiles):
        # 120 and 200 are both level 2
        seed_profiles(a=120, b=200, c=50)

        entries = await ranker.rank("level", limit=5)

        assert as_rows(entries) == [("a", 2, 1), ("b", 2, 1), ("c", 1, 2)]

    async def test_metric_is_case_insensitive(self, ranker, seed_profiles):
        seed_profiles(a=10)

        entries = await ranker.rank("XP", limit=1)

        assert as_rows(entries) == [("a", 10, 1)]

    async def test_no_users(self, ranker):
        assert await ranker.rank("xp", limit=5) == []


@pytest.mark.asyncio
class TestWindowedRankings:
    async def test_only_recent_xp_counts(self, ranker, seed_transaction):
        # Arrange
        await seed_transaction("u1", 50, days_ago=1)
        await seed_transaction("u1", 500, days_ago=40)
        await seed_transaction("u2", 80, days_ago=2)

        # Act
        entries = await ranker.rank("xp", limit=10, window_days=7)

        # Assert
        assert as_rows(entries) == [("u2", 80, 1), ("u1", 50, 2)]

    async def test_window_level_is_level_of_window_xp(self, ranker, seed_transaction):
        await seed_transaction("u1", 50, days_ago=1)
        await seed_transaction("u2", 80, days_ago=2)
        await seed_transaction("u3", 70, days_ago=1)
        await seed_transaction("u3", 50, days_ago=3)

        entries = await ranker.rank("level", limit=10, window_days=7)

        assert as_rows(entries) == [("u3", 2, 1), ("u1", 1, 2), ("u2", 1, 2)]

    async def test_window_level_respects_limit(self, ranker, seed_transaction):
        for user_id in ("a", "b", "c"):
            await seed_transaction(user_id, 10, days_ago=1)

        entries = await ranker.rank("level", limit=2, window_days=7)

        assert [entry.user_id for entry in entries] == ["a", "b"]


@pytest.mark.asyncio
class TestValidation:
    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"metric": "karma"}, "metric"),
            ({"metric": "xp", "limit": 0}, "limit"),
            ({"metric": "xp", "limit": 101}, "limit"),
            ({"metric": "xp", "limit": 5, "window_days": 0}, "window_days"),
            ({"metric": "xp", "limit": 5, "window_days": 366}, "window_days"),
            ({"metric": "xp", "limit": "--3"}, "limit"),
            ({"metric": "xp", "limit": 5, "window_days": "²"}, "window_days"),
        ],
    )
    async def test_rejects(self, ranker, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            await ranker.rank(**kwargs)

        assert exc_info.value.field == field
