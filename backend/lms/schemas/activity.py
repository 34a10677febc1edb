"""
Activity schemas.
"""

from datetime import datetime
from uuid import UUID

from lms.models.enums import ActivityType
from lms.schemas.base import BaseSchema


class ActivityRead(BaseSchema):
    id: UUID
    user_id: UUID
    action: ActivityType
    details: str | None = None
    created_at: datetime

