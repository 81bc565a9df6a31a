"""
SQL Store adapter (SQLAlchemy 2.0 async, PostgreSQL).

Purpose
-------
Implements the Store port over the ORM tables in
``questlog.database.models`` through ``DatabaseService``.

Transaction Discipline
----------------------
- Every write runs inside ``DatabaseService.get_transaction()``; the
  profile row is locked with ``SELECT ... FOR UPDATE`` before it changes.
- Default profiles and achievement unlocks are inserted with
  ``INSERT ... ON CONFLICT DO NOTHING``, so concurrent first writes and
  duplicate unlocks never raise.
- The unlock row, its bonus XP transaction and the XP increment commit
  together or not at all.
- ``IntegrityError`` on occurrences and unlocks surfaces as ``ConflictError``;
  connection failures surface as ``StoreUnavailableError`` (from
  DatabaseService).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from sqlalchemy import desc, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError

from questlog.core.database.base import new_id
from questlog.core.exceptions import StoreUnavailableError
from questlog.core.logging.logger import get_logger
from questlog.database.models import (
    AchievementModel,
    GoalModel,
    RecurringPatternModel,
    ScheduledOccurrenceModel,
    UserAchievementUnlockModel,
    UserGamificationProfileModel,
    XPTransactionModel,
)
from questlog.domain.models import (
    Achievement,
    AchievementTier,
    Frequency,
    LeaderboardCandidate,
    LeaderboardMetric,
    RecurringPattern,
    RecurringPatternSpec,
    ScheduledOccurrence,
    UnlockResult,
    UserGamificationProfile,
    UserStatsSnapshot,
    XPTransaction,
    condition_to_dict,
    parse_condition,
)
from questlog.modules.gamification.streak_logic import ensure_aware
from questlog.modules.shared.base_repository import BaseRepository
from questlog.modules.shared.constants import ACHIEVEMENT_BONUS_ACTION
from questlog.modules.shared.exceptions import ConflictError, ValidationError
from questlog.store.port import UNCHECKED

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from questlog.core.database.service import DatabaseService
    from questlog.modules.gamification.level_logic import LevelCurve

logger = get_logger(__name__)


# ============================================================================
# Repositories
# ============================================================================


class ProfileRepository(BaseRepository[UserGamificationProfileModel]):
    model = UserGamificationProfileModel

    async def ensure_exists(self, session: AsyncSession, user_id: str) -> None:
        """Insert a zero-state profile unless one exists."""
        stmt = (
            pg_insert(UserGamificationProfileModel)
            .values(user_id=user_id)
            .on_conflict_do_nothing(index_elements=[UserGamificationProfileModel.user_id])
        )
        await session.execute(stmt)

    async def get_locked(
        self, session: AsyncSession, user_id: str
    ) -> UserGamificationProfileModel:
        await self.ensure_exists(session, user_id)
        row = await self.first(
            session, UserGamificationProfileModel.user_id == user_id, lock=True
        )
        if row is None:
            raise StoreUnavailableError(
                "get_locked", f"profile row for {user_id} missing after upsert"
            )
        return row


class XPTransactionRepository(BaseRepository[XPTransactionModel]):
    model = XPTransactionModel


class AchievementRepository(BaseRepository[AchievementModel]):
    model = AchievementModel


class GoalRepository(BaseRepository[GoalModel]):
    model = GoalModel


class PatternRepository(BaseRepository[RecurringPatternModel]):
    model = RecurringPatternModel


class OccurrenceRepository(BaseRepository[ScheduledOccurrenceModel]):
    model = ScheduledOccurrenceModel


# ============================================================================
# Row mapping
# ============================================================================


def _to_profile(row: UserGamificationProfileModel) -> UserGamificationProfile:
    return UserGamificationProfile(
        user_id=row.user_id,
        total_xp=int(row.total_xp),
        current_level=row.current_level,
        streak_count=row.streak_count,
        last_activity_at=row.last_activity_at,
        timezone=row.timezone,
    )


def _to_achievement(row: AchievementModel) -> Achievement:
    return Achievement(
        id=row.id,
        name=row.name,
        condition=parse_condition(row.condition),
        xp_reward=row.xp_reward,
        module_id=row.module_id,
        description=row.description,
        tier=AchievementTier(row.tier),
    )


def _to_pattern(row: RecurringPatternModel) -> RecurringPattern:
    return RecurringPattern(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        workout_template_id=row.workout_template_id,
        frequency=Frequency(row.frequency),
        start_date=row.start_date,
        end_date=row.end_date,
        days_of_week=tuple(row.days_of_week or ()),
        times_per_week=row.times_per_week,
        duration_weeks=row.duration_weeks,
        description=row.description,
        is_active=row.is_active,
        created_at=row.created_at,
    )


def _to_occurrence(row: ScheduledOccurrenceModel) -> ScheduledOccurrence:
    return ScheduledOccurrence(
        id=row.id,
        pattern_id=row.pattern_id,
        user_id=row.user_id,
        workout_template_id=row.workout_template_id,
        scheduled_date=row.scheduled_date,
        title=row.title,
    )


def _same_instant(left: Optional[datetime], right: Optional[datetime]) -> bool:
    if left is None or right is None:
        return left is right
    return ensure_aware(left) == ensure_aware(right)


# ============================================================================
# SqlStore
# ============================================================================


class SqlStore:
    """Store port backed by PostgreSQL."""

    def __init__(self, database: DatabaseService, level_curve: LevelCurve) -> None:
        self._db = database
        self._levels = level_curve

        self._profiles = ProfileRepository()
        self._transactions = XPTransactionRepository()
        self._achievements = AchievementRepository()
        self._goals = GoalRepository()
        self._patterns = PatternRepository()
        self._occurrences = OccurrenceRepository()

    # ------------------------------------------------------------------ #
    # Seeding
    # ------------------------------------------------------------------ #

    async def add_achievement(self, achievement: Achievement) -> None:
        """Insert or replace an achievement definition."""
        values = {
            "id": achievement.id,
            "name": achievement.name,
            "description": achievement.description,
            "module_id": achievement.module_id,
            "condition": condition_to_dict(achievement.condition),
            "xp_reward": achievement.xp_reward,
            "tier": achievement.tier.value,
        }
        stmt = pg_insert(AchievementModel).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[AchievementModel.id],
            set_={key: stmt.excluded[key] for key in values if key != "id"},
        )
        async with self._db.get_transaction("add_achievement") as session:
            await session.execute(stmt)

    async def add_goal(
        self,
        user_id: str,
        module_id: Optional[str] = None,
        is_completed: bool = False,
        title: str = "",
    ) -> None:
        async with self._db.get_transaction("add_goal") as session:
            self._goals.add(
                session,
                GoalModel(
                    user_id=user_id,
                    module_id=module_id,
                    is_completed=is_completed,
                    title=title,
                ),
            )

    # ------------------------------------------------------------------ #
    # Profiles & XP
    # ------------------------------------------------------------------ #

    async def read_profile(self, user_id: str) -> UserGamificationProfile:
        async with self._db.get_transaction("read_profile") as session:
            await self._profiles.ensure_exists(session, user_id)
            row = await self._profiles.first(
                session, UserGamificationProfileModel.user_id == user_id
            )
            if row is None:
                raise StoreUnavailableError(
                    "read_profile", f"profile row for {user_id} missing after upsert"
                )
            return _to_profile(row)

    async def atomic_increment_xp_and_streak(
        self,
        user_id: str,
        xp_delta: int,
        new_streak_count: Optional[int],
        new_last_activity_at: Optional[datetime],
        expected_last_activity_at: Any = UNCHECKED,
    ) -> UserGamificationProfile:
        async with self._db.get_transaction("increment_xp_and_streak") as session:
            row = await self._profiles.get_locked(session, user_id)

            if new_streak_count is not None and expected_last_activity_at is not UNCHECKED:
                if not _same_instant(row.last_activity_at, expected_last_activity_at):
                    raise ConflictError(
                        "profile",
                        "last activity changed since the profile was read",
                        identifier=user_id,
                    )

            self._apply_xp(row, xp_delta)
            if new_streak_count is not None:
                row.streak_count = new_streak_count
                row.last_activity_at = new_last_activity_at
            await self._profiles.flush(session)
            return _to_profile(row)

    def _apply_xp(self, row: UserGamificationProfileModel, xp_delta: int) -> None:
        row.total_xp = int(row.total_xp) + xp_delta
        row.current_level = self._levels.level_number(row.total_xp)

    async def append_transaction(self, transaction: XPTransaction) -> None:
        async with self._db.get_transaction("append_transaction") as session:
            self._transactions.add(session, self._transaction_row(transaction))

    @staticmethod
    def _transaction_row(transaction: XPTransaction) -> XPTransactionModel:
        return XPTransactionModel(
            id=transaction.id,
            user_id=transaction.user_id,
            action_type=transaction.action_type,
            module_id=transaction.module_id,
            difficulty=transaction.difficulty,
            achievement_id=transaction.achievement_id,
            xp_awarded=transaction.xp_awarded,
            occurred_at=transaction.occurred_at,
            meta=dict(transaction.metadata),
        )

    # ------------------------------------------------------------------ #
    # Achievements
    # ------------------------------------------------------------------ #

    async def read_user_stats_snapshot(self, user_id: str) -> UserStatsSnapshot:
        async with self._db.get_session("read_user_stats_snapshot") as session:
            total_goals = await self._goals.count(session, GoalModel.user_id == user_id)
            completed_goals = await self._goals.count(
                session, GoalModel.user_id == user_id, GoalModel.is_completed.is_(True)
            )

            per_module = await session.execute(
                select(GoalModel.module_id, func.count())
                .where(
                    GoalModel.user_id == user_id,
                    GoalModel.is_completed.is_(True),
                    GoalModel.module_id.is_not(None),
                )
                .group_by(GoalModel.module_id)
            )

            profile = await self._profiles.first(
                session, UserGamificationProfileModel.user_id == user_id
            )
            return UserStatsSnapshot(
                total_goals=total_goals,
                completed_goals=completed_goals,
                completed_goals_by_module={
                    module_id: int(count) for module_id, count in per_module.all()
                },
                streak_count=profile.streak_count if profile else 0,
                total_xp=int(profile.total_xp) if profile else 0,
            )

    async def list_unlocked_achievement_ids(self, user_id: str) -> List[str]:
        async with self._db.get_session("list_unlocked_achievement_ids") as session:
            result = await session.execute(
                select(UserAchievementUnlockModel.achievement_id)
                .where(UserAchievementUnlockModel.user_id == user_id)
                .order_by(UserAchievementUnlockModel.achievement_id)
            )
            return list(result.scalars().all())

    async def list_achievements(
        self, module_id: Optional[str] = None
    ) -> Sequence[Achievement]:
        scope = AchievementModel.module_id.is_(None)
        if module_id is not None:
            scope = or_(scope, AchievementModel.module_id == module_id)

        async with self._db.get_session("list_achievements") as session:
            rows = await self._achievements.all(
                session, scope, order_by=(AchievementModel.id,)
            )
        achievements: List[Achievement] = []
        for row in rows:
            try:
                achievements.append(_to_achievement(row))
            except ValidationError as exc:
                logger.error(
                    "Skipping achievement with malformed condition",
                    extra={"achievement_id": row.id, "error": exc.validation_message},
                )
        return achievements

    async def create_unlock_if_absent(
        self,
        user_id: str,
        achievement_id: str,
        unlocked_at: datetime,
        xp_reward: int = 0,
    ) -> UnlockResult:
        try:
            async with self._db.get_transaction("create_unlock") as session:
                inserted = await session.execute(
                    pg_insert(UserAchievementUnlockModel)
                    .values(
                        id=new_id(),
                        user_id=user_id,
                        achievement_id=achievement_id,
                        unlocked_at=unlocked_at,
                    )
                    .on_conflict_do_nothing(
                        constraint="uq_user_achievement_unlocks_user_achievement"
                    )
                    .returning(UserAchievementUnlockModel.id)
                )
                if inserted.scalar_one_or_none() is None:
                    return UnlockResult(created=False)

                row = await self._profiles.get_locked(session, user_id)
                if xp_reward > 0:
                    self._transactions.add(
                        session,
                        XPTransactionModel(
                            id=new_id(),
                            user_id=user_id,
                            action_type=ACHIEVEMENT_BONUS_ACTION,
                            achievement_id=achievement_id,
                            xp_awarded=xp_reward,
                            occurred_at=unlocked_at,
                            meta={},
                        ),
                    )
                    self._apply_xp(row, xp_reward)
                await self._profiles.flush(session)
                return UnlockResult(created=True, profile=_to_profile(row))
        except IntegrityError as exc:
            raise ConflictError(
                "achievement_unlock", str(exc.orig), identifier=achievement_id
            ) from exc

    # ------------------------------------------------------------------ #
    # Leaderboard
    # ------------------------------------------------------------------ #

    async def list_users_ranked_by(
        self,
        metric: LeaderboardMetric,
        limit: Optional[int],
        since: Optional[datetime] = None,
    ) -> List[LeaderboardCandidate]:
        if since is not None:
            value = func.sum(XPTransactionModel.xp_awarded)
            stmt = (
                select(XPTransactionModel.user_id, value.label("value"))
                .where(XPTransactionModel.occurred_at >= since)
                .group_by(XPTransactionModel.user_id)
                .order_by(desc("value"), XPTransactionModel.user_id)
            )
        else:
            column = (
                UserGamificationProfileModel.current_level
                if metric is LeaderboardMetric.LEVEL
                else UserGamificationProfileModel.total_xp
            )
            stmt = select(UserGamificationProfileModel.user_id, column).order_by(
                desc(column), UserGamificationProfileModel.user_id
            )
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._db.get_session("list_users_ranked_by") as session:
            result = await session.execute(stmt)
            return [
                LeaderboardCandidate(user_id=user_id, value=int(value))
                for user_id, value in result.all()
            ]

    # ------------------------------------------------------------------ #
    # Schedules
    # ------------------------------------------------------------------ #

    async def create_recurring_pattern(
        self, user_id: str, spec: RecurringPatternSpec
    ) -> RecurringPattern:
        if spec.end_date is None:
            raise ValidationError("end_date", "must be resolved before the pattern is stored")

        async with self._db.get_transaction("create_recurring_pattern") as session:
            row = self._patterns.add(
                session,
                RecurringPatternModel(
                    user_id=user_id,
                    name=spec.name,
                    description=spec.description,
                    workout_template_id=spec.workout_template_id,
                    frequency=Frequency(spec.frequency).value,
                    days_of_week=list(spec.days_of_week),
                    times_per_week=spec.times_per_week,
                    duration_weeks=spec.duration_weeks,
                    start_date=spec.start_date,
                    end_date=spec.end_date,
                    is_active=True,
                ),
            )
            await self._patterns.flush(session)
            return _to_pattern(row)

    async def create_occurrence(
        self, pattern: RecurringPattern, scheduled_date: date, title: str
    ) -> ScheduledOccurrence:
        try:
            async with self._db.get_transaction("create_occurrence") as session:
                row = self._occurrences.add(
                    session,
                    ScheduledOccurrenceModel(
                        pattern_id=pattern.id,
                        user_id=pattern.user_id,
                        workout_template_id=pattern.workout_template_id,
                        scheduled_date=scheduled_date,
                        title=title,
                    ),
                )
                await self._occurrences.flush(session)
                return _to_occurrence(row)
        except IntegrityError as exc:
            raise ConflictError(
                "scheduled_occurrence",
                str(exc.orig),
                identifier=f"{pattern.id}:{scheduled_date.isoformat()}",
            ) from exc
