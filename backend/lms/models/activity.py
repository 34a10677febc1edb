"""
Activity (audit trail) model.
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.session import Base
from lms.models.base import UUIDMixin, TimestampMixin
from lms.models.enums import ActivityType

if TYPE_CHECKING:
    from lms.models.user import User


class Activity(Base, UUIDMixin, TimestampMixin):
    """Append-only record of a circulation or account event."""
    __tablename__ = "activities"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[ActivityType] = mapped_column(
        SQLEnum(ActivityType, name="activity_type"),
        nullable=False,
    )
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_action", "action"),
    )

    def __repr__(self) -> str:
        return f"<Activity {self.action.value}>"
