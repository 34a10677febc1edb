"""
Audit trail of circulation and account events.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.activity import Activity
from lms.models.enums import ActivityType
from lms.repositories.activity import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityService:
    """Writes and lists Activity records."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = ActivityRepository(db)

    async def log(self, user_id: UUID, action: ActivityType, details: str | None = None) -> None:
        """
        Records an event.

        Runs after the primary change is committed; a failure here is logged
        and rolled back without reaching the caller.
        """
        try:
            self.db.add(Activity(user_id=user_id, action=action, details=details))
            await self.db.commit()
        except SQLAlchemyError:
            logger.exception(f"Failed to record activity {action.value} for user {user_id}")
            await self.db.rollback()

    async def list_activities(
        self,
        user_id: UUID | None = None,
        action: ActivityType | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Activity], int]:
        return await self.repo.search(
            user_id=user_id,
            action=action,
            page=page,
            page_size=page_size,
        )
