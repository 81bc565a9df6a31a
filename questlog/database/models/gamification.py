"""
Gamification tables: profiles, XP ledger, achievements, unlocks, goals.
Schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from questlog.core.database.base import Base, IdMixin, TimestampMixin, utc_now


class UserGamificationProfileModel(Base, TimestampMixin):
    """
    Per-user XP total, cached level and streak.

    ``current_level`` is always written together with ``total_xp``.
    """

    __tablename__ = "user_gamification_profiles"
    __table_args__ = (
        Index("ix_profiles_total_xp", "total_xp"),
        Index("ix_profiles_current_level", "current_level"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total_xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    streak_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")


class XPTransactionModel(Base, IdMixin):
    """Append-only XP ledger. Rows are never updated or deleted."""

    __tablename__ = "xp_transactions"
    __table_args__ = (
        Index("ix_xp_transactions_user_occurred", "user_id", "occurred_at"),
        Index("ix_xp_transactions_occurred", "occurred_at"),
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False)
    module_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    difficulty: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    achievement_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    xp_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    meta: Mapped[Dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )


class AchievementModel(Base, TimestampMixin):
    """Administrator-defined achievement; ``condition`` holds its stored mapping form."""

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    module_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    condition: Mapped[Dict[str, Any]] = mapped_column(JSONB, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tier: Mapped[str] = mapped_column(String(16), nullable=False, default="bronze")


class UserAchievementUnlockModel(Base, IdMixin):
    __tablename__ = "user_achievement_unlocks"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "achievement_id", name="uq_user_achievement_unlocks_user_achievement"
        ),
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("achievements.id", ondelete="CASCADE"),
        nullable=False,
    )
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class GoalModel(Base, IdMixin, TimestampMixin):
    """
    Minimal goal record. Goals are owned elsewhere in the application; the
    gamification core only counts them for achievement statistics.
    """

    __tablename__ = "goals"
    __table_args__ = (Index("ix_goals_user_module", "user_id", "module_id"),)

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    module_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
