"""
Unit of work over an async SQLAlchemy session.

The scheduling services talk to storage only through these verbs
(get / find / exists / add / remove / count / query / save_changes), so the
same services run against PostgreSQL in production and SQLite in tests.

Usage:
    async with async_session_scope() as session:
        uow = UnitOfWork(session)
        record = await uow.find_one(
            ProgressRecord,
            ProgressRecord.user_id == user_id,
            ProgressRecord.flashcard_id == flashcard_id,
        )
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from sqlalchemy import ColumnElement, Select, delete, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class UnitOfWork:
    """Repository verbs plus a transactional commit over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ========================================
    # Reads
    # ========================================

    async def get(self, model: type[T], pk: Any) -> T | None:
        """Fetch an entity by primary key."""
        return await self.session.get(model, pk)

    async def find_one(self, model: type[T], *criteria: ColumnElement[bool]) -> T | None:
        """First entity matching all criteria, or None."""
        stmt = select(model).where(*criteria).limit(1)
        return (await self.session.scalars(stmt)).first()

    async def find(
        self,
        model: type[T],
        *criteria: ColumnElement[bool],
        order_by: Sequence[Any] = (),
        limit: int | None = None,
    ) -> list[T]:
        """All entities matching the criteria."""
        stmt = select(model).where(*criteria)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await self.session.scalars(stmt)).all())

    async def exists(self, model: type[Any], *criteria: ColumnElement[bool]) -> bool:
        """True if at least one entity matches."""
        stmt = select(literal(1)).select_from(model).where(*criteria).limit(1)
        return await self.session.scalar(stmt) is not None

    async def count(self, model: type[Any], *criteria: ColumnElement[bool]) -> int:
        """Number of entities matching the criteria."""
        stmt = select(func.count()).select_from(model).where(*criteria)
        return int(await self.session.scalar(stmt) or 0)

    async def scalar(self, stmt: Select[Any]) -> Any:
        """Run an arbitrary select (aggregates, grouping) and return the first column of the first row."""
        return await self.session.scalar(stmt)

    async def rows(self, stmt: Select[Any]) -> list[Any]:
        """Run an arbitrary select and return all result rows."""
        return list((await self.session.execute(stmt)).all())

    # ========================================
    # Writes
    # ========================================

    async def add(self, entity: T) -> T:
        """
        Stage a new entity.

        The session is flushed so later reads in the same unit of work see the
        entity; nothing is committed until save_changes().
        """
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def remove(self, entity: Any) -> None:
        """Stage deletion of one entity."""
        await self.session.delete(entity)

    async def remove_where(self, model: type[Any], *criteria: ColumnElement[bool]) -> int:
        """Delete all matching entities; returns the number removed."""
        result = await self.session.execute(delete(model).where(*criteria))
        return int(result.rowcount or 0)

    async def save_changes(self) -> None:
        """Commit the unit of work."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Discard uncommitted changes."""
        await self.session.rollback()
