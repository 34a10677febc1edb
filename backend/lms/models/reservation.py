"""
Reservation model.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.session import Base
from lms.models.base import UUIDMixin, TimestampMixin
from lms.models.enums import ReservationStatus

if TYPE_CHECKING:
    from lms.models.user import User
    from lms.models.item import LibraryItem
    from lms.models.loan import Loan


class Reservation(Base, UUIDMixin, TimestampMixin):
    """
    A user's request to receive an item once it is available.

    State flow:
        PENDING: waiting in the item queue (FIFO by created_at)
        FULFILLED: approved by staff, loan_id points to the new loan
        EXPIRED: expires_at passed while PENDING
        CANCELLED: withdrawn by the owner or staff

    Attributes:
        user_id: Requesting user
        item_id: Requested item
        status: Current status
        expires_at: Moment the PENDING reservation lapses
        loan_id: Loan created on approval
    """
    __tablename__ = "reservations"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("library_items.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[ReservationStatus] = mapped_column(
        SQLEnum(ReservationStatus, name="reservation_status"),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    loan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("loans.id", ondelete="SET NULL"),
        nullable=True,
    )

    user: Mapped["User"] = relationship("User", lazy="selectin")
    item: Mapped["LibraryItem"] = relationship("LibraryItem", lazy="selectin")
    loan: Mapped[Optional["Loan"]] = relationship("Loan", lazy="selectin")

    __table_args__ = (
        Index("ix_reservations_user_id", "user_id"),
        # Item queue ordered by created_at
        Index("ix_reservations_item_queue", "item_id", "status", "created_at"),
        Index("ix_reservations_status_expires", "status", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Reservation {self.id} - {self.status.value}>"

    @property
    def is_pending(self) -> bool:
        return self.status == ReservationStatus.PENDING

    @property
    def is_expired(self) -> bool:
        """True when still PENDING but past expires_at."""
        if self.status != ReservationStatus.PENDING:
            return False
        return datetime.utcnow() > self.expires_at.replace(tzinfo=None)
