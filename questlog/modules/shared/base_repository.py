"""
Per-table data access over async SQLAlchemy sessions.

A repository is bound to one mapped class through the ``model`` class
attribute and never opens or commits a session itself; callers pass the
session from ``DatabaseService.get_session`` / ``get_transaction``.
Statements that are not simple filtered selects (upserts, grouped
aggregates) stay in the store that owns them.

    class ProfileRepository(BaseRepository[UserGamificationProfileModel]):
        model = UserGamificationProfileModel

    row = await ProfileRepository().first(session, Model.user_id == uid, lock=True)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select

from questlog.core.logging.logger import get_logger

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: ClassVar[Type[Any]]

    def __init__(self) -> None:
        self.log = get_logger(f"questlog.store.{type(self).__name__}")

    @property
    def table(self) -> str:
        return self.model.__tablename__

    async def first(
        self,
        session: AsyncSession,
        *where: ColumnElement[bool],
        lock: bool = False,
    ) -> Optional[ModelT]:
        """One matching row or None; ``lock`` adds ``FOR UPDATE``."""
        stmt = select(self.model).where(*where)
        if lock:
            stmt = stmt.with_for_update()
        row = (await session.execute(stmt)).scalar_one_or_none()
        self.log.debug(
            "select one",
            extra={"table": self.table, "found": row is not None, "locked": lock},
        )
        return row

    async def all(
        self,
        session: AsyncSession,
        *where: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        stmt = select(self.model).where(*where).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = list((await session.execute(stmt)).scalars())
        self.log.debug("select many", extra={"table": self.table, "rows": len(rows)})
        return rows

    async def count(self, session: AsyncSession, *where: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model).where(*where)
        return int((await session.execute(stmt)).scalar_one())

    def add(self, session: AsyncSession, row: ModelT) -> ModelT:
        session.add(row)
        return row

    async def flush(self, session: AsyncSession) -> None:
        """Flush pending rows so constraint violations surface here."""
        await session.flush()
