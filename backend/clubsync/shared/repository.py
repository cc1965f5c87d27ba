"""
Generic async repository.

Feature repositories subclass BaseRepository for lookups by id or by
column values, create/update and bulk delete. Repositories flush but never
commit: the caller owns the transaction, so a sync pass for one club can
be rolled back as a whole.

Usage:
    class ClubRepository(BaseRepository[Club]):
        def __init__(self, db: AsyncSession):
            super().__init__(db, Club)

        async def get_by_strava_id(self, strava_club_id: str) -> Club | None:
            return await self.get_by(strava_club_id=strava_club_id)
"""

from typing import TypeVar, Generic, Type

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Common data access shared by the club and event repositories."""

    def __init__(self, db: AsyncSession, model: Type[T]):
        self.db = db
        self.model = model

    def _where(self, query, **filters):
        for column, value in filters.items():
            query = query.where(getattr(self.model, column) == value)
        return query

    async def get_by_id(self, id: int) -> T | None:
        """Entity by local primary key."""
        return await self.db.get(self.model, id)

    async def get_by(self, **filters) -> T | None:
        """First entity whose columns equal the given values."""
        result = await self.db.execute(self._where(select(self.model), **filters))
        return result.scalars().first()

    async def get_all(self, **filters) -> list[T]:
        result = await self.db.execute(
            self._where(select(self.model), **filters).order_by(self.model.id)
        )
        return list(result.scalars().all())

    async def create(self, **values) -> T:
        """
        Add a new entity and flush it.

        Returns:
            The entity with its generated id and server defaults loaded
        """
        entity = self.model(**values)
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def update(self, entity: T, **values) -> T:
        """Overwrite the given fields of an entity and flush."""
        for column, value in values.items():
            setattr(entity, column, value)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def count(self, **filters) -> int:
        query = self._where(select(func.count()).select_from(self.model), **filters)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def delete_all(self) -> int:
        """
        Delete every row of the table.

        Returns:
            Number of rows deleted
        """
        result = await self.db.execute(delete(self.model))
        await self.db.flush()
        return result.rowcount or 0
