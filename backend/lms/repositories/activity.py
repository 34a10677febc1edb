"""
Activity data access.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.activity import Activity
from lms.models.enums import ActivityType
from lms.repositories.base import BaseRepository


class ActivityRepository(BaseRepository[Activity]):
    """Read access and inserts for Activity."""

    def __init__(self, db: AsyncSession):
        super().__init__(Activity, db)

    async def search(
        self,
        user_id: UUID | None = None,
        action: ActivityType | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Activity], int]:
        query = select(Activity)
        if user_id is not None:
            query = query.where(Activity.user_id == user_id)
        if action is not None:
            query = query.where(Activity.action == action)

        return await self.paginate(query.order_by(Activity.created_at.desc()), page, page_size)
