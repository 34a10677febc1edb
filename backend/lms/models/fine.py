"""
Fine model.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.session import Base
from lms.models.base import UUIDMixin, TimestampMixin
from lms.models.enums import FineStatus

if TYPE_CHECKING:
    from lms.models.user import User
    from lms.models.loan import Loan


class Fine(Base, UUIDMixin, TimestampMixin):
    """
    Monetary penalty owed by a user, optionally tied to a loan.

    The amount is fixed at creation and never recalculated.

    Transitions:
        PENDING -> PAID
        PENDING -> WAIVED (waived_by_id recorded)
        PENDING -> deleted (admin only)

    Attributes:
        user_id: Debtor
        loan_id: Originating loan (nullable)
        amount: Value with 2 decimal places
        reason: Free text
        status: PENDING, PAID or WAIVED
        due_date: Payment deadline (optional)
        waived_by_id: Staff member who waived it
        paid_at: Payment timestamp
        waived_at: Waiver timestamp
    """
    __tablename__ = "fines"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    loan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("loans.id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    reason: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default="Overdue fine",
    )
    status: Mapped[FineStatus] = mapped_column(
        SQLEnum(FineStatus, name="fine_status"),
        nullable=False,
        default=FineStatus.PENDING,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    waived_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    waived_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[user_id],
        lazy="selectin",
    )
    waived_by: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[waived_by_id],
        lazy="selectin",
    )
    loan: Mapped[Optional["Loan"]] = relationship("Loan", lazy="selectin")

    __table_args__ = (
        Index("ix_fines_user_id", "user_id"),
        Index("ix_fines_loan_status", "loan_id", "status"),
        Index("ix_fines_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Fine {self.id} {self.amount} - {self.status.value}>"

    @property
    def is_settled(self) -> bool:
        """True for the terminal states."""
        return self.status in (FineStatus.PAID, FineStatus.WAIVED)
