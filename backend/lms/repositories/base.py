"""
Shared repository plumbing: primary key lookups, row locks, inserts
and the paginated listing every search endpoint goes through.
"""

from typing import Any, Generic, Type, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.db.session import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository for one mapped class.

    Services own the transaction: only create() and delete() commit on
    their own, everything else leaves that to the caller.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    async def get_by_id(self, id: UUID) -> ModelType | None:
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def get_by_id_for_update(self, id: UUID) -> ModelType | None:
        """
        Fetch a row holding a lock until the transaction ends.

        The instance is refreshed from the locked row so stale state from
        the identity map never drives a status change. SQLite ignores
        FOR UPDATE.
        """
        result = await self.db.execute(
            select(self.model)
            .where(self.model.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def paginate(
        self,
        query: Select,
        page: int,
        page_size: int,
    ) -> tuple[list[ModelType], int]:
        """
        Runs an ordered query for one page.

        Returns:
            Tuple (rows on the page, total rows matching the query)
        """
        count_result = await self.db.execute(
            select(func.count()).select_from(query.order_by(None).subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            query.offset((page - 1) * page_size).limit(page_size)
        )
        return list(result.scalars().all()), total

    async def create(self, **kwargs: Any) -> ModelType:
        """Insert a row and commit."""
        instance = self.model(**kwargs)
        self.db.add(instance)
        await self.db.commit()
        await self.db.refresh(instance)
        return instance

    async def delete(self, instance: ModelType) -> None:
        await self.db.delete(instance)
        await self.db.commit()

    async def count(self) -> int:
        result = await self.db.execute(
            select(func.count(self.model.id))
        )
        return result.scalar_one()
