"""
Recurring schedule tables: patterns and their materialized occurrences.
Schema only.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from questlog.core.database.base import Base, IdMixin, TimestampMixin


class RecurringPatternModel(Base, IdMixin, TimestampMixin):
    """
    A user's recurring workout pattern. ``end_date`` is always stored
    resolved; ``days_of_week`` uses 0=Sunday.
    """

    __tablename__ = "recurring_patterns"
    __table_args__ = (Index("ix_recurring_patterns_user_active", "user_id", "is_active"),)

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    workout_template_id: Mapped[str] = mapped_column(String(64), nullable=False)
    frequency: Mapped[str] = mapped_column(String(16), nullable=False)
    days_of_week: Mapped[List[int]] = mapped_column(JSONB, nullable=False, default=list)
    times_per_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration_weeks: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ScheduledOccurrenceModel(Base, IdMixin, TimestampMixin):
    __tablename__ = "scheduled_occurrences"
    __table_args__ = (
        UniqueConstraint(
            "pattern_id", "scheduled_date", name="uq_scheduled_occurrences_pattern_date"
        ),
        Index("ix_scheduled_occurrences_user_date", "user_id", "scheduled_date"),
    )

    pattern_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("recurring_patterns.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    workout_template_id: Mapped[str] = mapped_column(String(64), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
