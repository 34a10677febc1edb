"""
Fine schemas and fine constants.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from lms.models.enums import FineStatus
from lms.schemas.base import Money

FINE_PER_DAY = Decimal("1.50")
FINE_PAYMENT_DAYS = 14
DEFAULT_FINE_REASON = "Overdue fine"


def overdue_reason(days: int) -> str:
    """Reason text used for fines created by the overdue calculation."""
    return f"Late return fee - {days} days overdue"


class FineCreate(BaseModel):
    """Manual fine issued by staff."""

    user_id: UUID
    loan_id: UUID | None = None
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    reason: str = Field(DEFAULT_FINE_REASON, min_length=1, max_length=500)
    due_date: datetime | None = None


class FineDetail(BaseModel):
    """Fine with debtor and loan context."""

    id: UUID
    user_id: UUID
    user_name: str | None = None
    user_email: str | None = None
    loan_id: UUID | None = None
    item_title: str | None = None
    amount: Money
    reason: str
    status: FineStatus
    due_date: datetime | None = None
    waived_by_id: UUID | None = None
    waived_by_name: str | None = None
    paid_at: datetime | None = None
    waived_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_fine(cls, fine) -> "FineDetail":
        """Builds from a Fine with user, loan and waiver loaded."""
        user = getattr(fine, "user", None)
        loan = getattr(fine, "loan", None)
        item = getattr(loan, "item", None) if loan else None
        waived_by = getattr(fine, "waived_by", None)

        return cls(
            id=fine.id,
            user_id=fine.user_id,
            user_name=user.name if user else None,
            user_email=user.email if user else None,
            loan_id=fine.loan_id,
            item_title=item.title if item else None,
            amount=fine.amount,
            reason=fine.reason,
            status=fine.status,
            due_date=fine.due_date,
            waived_by_id=fine.waived_by_id,
            waived_by_name=waived_by.name if waived_by else None,
            paid_at=fine.paid_at,
            waived_at=fine.waived_at,
            created_at=fine.created_at,
        )


class MyFines(BaseModel):
    """A user's fines with totals per status."""

    items: list[FineDetail]
    total_pending: Money
    total_paid: Money
    total_waived: Money


class OverdueCalculationResult(BaseModel):
    """Outcome of the overdue fine calculation."""

    message: str
    loans_scanned: int
    fines_created: int
    total_amount: Money
    fine_ids: list[UUID] = Field(default_factory=list)


class FineReminderResult(BaseModel):
    message: str
    sent_to: str
