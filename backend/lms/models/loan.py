"""
Loan model.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.session import Base
from lms.models.base import UUIDMixin, TimestampMixin
from lms.models.enums import LoanStatus

if TYPE_CHECKING:
    from lms.models.user import User
    from lms.models.item import LibraryItem


class Loan(Base, UUIDMixin, TimestampMixin):
    """
    An item lent to a user.

    Business rules:
        - due_date = loan_date + 14 days, moved only by a renewal
        - Overdue is derived (BORROWED and due_date in the past)
        - Returning sets status RETURNED and return_date

    Attributes:
        user_id: Borrower
        item_id: Lent item
        loan_date: When the item left the desk
        due_date: Expected return
        return_date: Actual return (null while open)
        status: BORROWED or RETURNED
        renewal_count: Renewals performed
    """
    __tablename__ = "loans"

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
    loan_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
    )
    due_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    return_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    status: Mapped[LoanStatus] = mapped_column(
        SQLEnum(LoanStatus, name="loan_status"),
        nullable=False,
        default=LoanStatus.BORROWED,
    )
    renewal_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    user: Mapped["User"] = relationship("User", lazy="selectin")
    item: Mapped["LibraryItem"] = relationship("LibraryItem", lazy="selectin")

    __table_args__ = (
        Index("ix_loans_user_id", "user_id"),
        Index("ix_loans_item_id", "item_id"),
        Index("ix_loans_user_status", "user_id", "status"),
        # Overdue scan
        Index("ix_loans_status_due_date", "status", "due_date"),
    )

    def __repr__(self) -> str:
        return f"<Loan {self.id} - {self.status.value}>"

    @property
    def is_active(self) -> bool:
        """True while the item has not been returned."""
        return self.status == LoanStatus.BORROWED

    @property
    def is_overdue(self) -> bool:
        """True when open and past its due date."""
        if not self.is_active:
            return False
        return datetime.utcnow() > self.due_date.replace(tzinfo=None)

    @property
    def days_overdue(self) -> int:
        """Whole days past the due date (0 when not overdue)."""
        if not self.is_overdue:
            return 0
        delta = datetime.utcnow() - self.due_date.replace(tzinfo=None)
        return max(0, delta.days)
