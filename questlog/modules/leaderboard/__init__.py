"""
Leaderboard module.

- **service.py**: LeaderboardRanker and the dense-ranking helper
"""

from questlog.modules.leaderboard.service import LeaderboardRanker, assign_dense_ranks

__all__ = ["LeaderboardRanker", "assign_dense_ranks"]
