"""
Database Models Package

SQLAlchemy ORM tables backing ``SqlStore``. Schema only: no business
logic, ``Mapped[]`` annotations with ``mapped_column()``, shared mixins from
``questlog.core.database.base``.

- gamification: profiles, XP ledger, achievements, unlocks, goals
- schedule: recurring patterns and scheduled occurrences
"""

from questlog.core.database.base import Base

from .gamification import (
    AchievementModel,
    GoalModel,
    UserAchievementUnlockModel,
    UserGamificationProfileModel,
    XPTransactionModel,
)
from .schedule import RecurringPatternModel, ScheduledOccurrenceModel

__all__ = [
    "Base",
    "AchievementModel",
    "GoalModel",
    "UserAchievementUnlockModel",
    "UserGamificationProfileModel",
    "XPTransactionModel",
    "RecurringPatternModel",
    "ScheduledOccurrenceModel",
]
