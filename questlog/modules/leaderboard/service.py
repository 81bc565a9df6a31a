"""
Leaderboard Ranker

Purpose
-------
Ranks users by lifetime XP, current level, or XP earned within a recent
window.

Domain
------
- Validate metric, limit and window
- Order by value descending, ties broken by ``user_id`` ascending
- Assign dense 1-based ranks (tied values share a rank; the next distinct
  value gets the next integer)

Design Notes
------------
Lifetime rankings read the profile columns through the store. Windowed
rankings sum XP transactions since ``now - window_days``; for the ``level``
metric that windowed XP is mapped through the LevelCurve over the whole
candidate list before truncating to ``limit``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Iterable, List, Optional

from questlog.core.validation.input_validator import InputValidator
from questlog.domain.models import LeaderboardCandidate, LeaderboardMetric, RankedEntry
from questlog.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from questlog.core.config.manager import ConfigManager
    from questlog.core.event.bus import EventBus
    from questlog.modules.gamification.level_logic import LevelCurve
    from questlog.modules.gamification.streak_logic import Clock
    from questlog.store.port import Store


def order_candidates(
    candidates: Iterable[LeaderboardCandidate],
) -> List[LeaderboardCandidate]:
    return sorted(candidates, key=lambda candidate: (-candidate.value, candidate.user_id))


def assign_dense_ranks(candidates: Iterable[LeaderboardCandidate]) -> List[RankedEntry]:
    """
    Order candidates and give them dense ranks.

    Example:
        >>> entries = assign_dense_ranks([
        ...     LeaderboardCandidate("a", 100),
        ...     LeaderboardCandidate("b", 300),
        ...     LeaderboardCandidate("c", 200),
        ...     LeaderboardCandidate("d", 300),
        ... ])
        >>> [(e.user_id, e.rank) for e in entries]
        [('b', 1), ('d', 1), ('c', 2), ('a', 3)]
    """
    entries: List[RankedEntry] = []
    rank = 0
    previous_value: Optional[int] = None
    for candidate in order_candidates(candidates):
        if candidate.value != previous_value:
            rank += 1
            previous_value = candidate.value
        entries.append(RankedEntry(candidate.user_id, candidate.value, rank))
    return entries


class LeaderboardRanker(BaseService):
    """
    Read-only leaderboard queries.

    Public Methods
    --------------
    - rank() -> Top users for a metric, optionally within a time window
    """

    def __init__(
        self,
        store: Store,
        level_curve: LevelCurve,
        clock: Clock,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._levels = level_curve
        self._clock = clock

    async def rank(
        self,
        metric: str,
        limit: Optional[int] = None,
        window_days: Optional[int] = None,
    ) -> List[RankedEntry]:
        """
        Top ``limit`` users by ``metric``.

        Args:
            metric: ``"xp"`` or ``"level"``
            limit: Number of entries, 1..``leaderboard.max_limit``
                (default ``leaderboard.default_limit``)
            window_days: Restrict to XP earned in the last N days

        Raises:
            ValidationError: Unknown metric, or limit/window out of range
            StoreUnavailableError: The store could not be reached

        Example:
            >>> entries = await ranker.rank("xp", limit=3)
            >>> [(e.user_id, e.value, e.rank) for e in entries]
            [('u2', 300, 1), ('u4', 300, 1), ('u3', 200, 2)]
        """
        chosen = LeaderboardMetric(
            InputValidator.validate_choice(
                metric, "metric", [member.value for member in LeaderboardMetric]
            )
        )
        if limit is None:
            limit = int(self.get_config("leaderboard.default_limit", 10))
        limit = InputValidator.validate_positive_integer(
            limit, "limit", max_value=int(self.get_config("leaderboard.max_limit", 100))
        )
        if window_days is not None:
            window_days = InputValidator.validate_positive_integer(
                window_days,
                "window_days",
                max_value=int(self.get_config("leaderboard.max_window_days", 365)),
            )

        self.log_operation(
            "rank_leaderboard", metric=chosen.value, limit=limit, window_days=window_days
        )

        if window_days is None:
            candidates = await self._store.list_users_ranked_by(chosen, limit)
            return assign_dense_ranks(candidates)[:limit]

        since = self._clock.now() - timedelta(days=window_days)
        if chosen is LeaderboardMetric.XP:
            candidates = await self._store.list_users_ranked_by(chosen, limit, since)
            return assign_dense_ranks(candidates)[:limit]

        windowed_xp = await self._store.list_users_ranked_by(chosen, None, since)
        candidates = [
            LeaderboardCandidate(
                candidate.user_id, self._levels.level_number(candidate.value)
            )
            for candidate in windowed_xp
        ]
        return assign_dense_ranks(candidates)[:limit]
