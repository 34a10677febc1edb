"""
Loan schemas and circulation constants.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from lms.models.enums import LoanStatus
from lms.schemas.base import Money
from lms.schemas.fine import FINE_PER_DAY

# Business constants
LOAN_PERIOD_DAYS = 14
MAX_ACTIVE_LOANS = 5
MAX_RENEWALS = 2


class BorrowRequest(BaseModel):
    """Self-service borrow."""

    item_id: UUID = Field(..., description="Item to borrow")


class LoanForUserCreate(BaseModel):
    """Desk checkout on behalf of a patron."""

    user_id: UUID
    item_id: UUID


class LoanDetail(BaseModel):
    """
    Loan with borrower and item data.

    Overdue fields are derived at read time and never stored.
    """

    id: UUID
    user_id: UUID
    user_name: str | None = None
    user_email: str | None = None
    item_id: UUID
    item_title: str | None = None
    item_code: str | None = None
    loan_date: datetime
    due_date: datetime
    return_date: datetime | None = None
    status: LoanStatus
    renewal_count: int

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_overdue(self) -> bool:
        if self.status != LoanStatus.BORROWED:
            return False
        return datetime.utcnow() > self.due_date.replace(tzinfo=None)

    @computed_field
    @property
    def days_overdue(self) -> int:
        """Whole days past due (0 when returned or on time)."""
        if not self.is_overdue:
            return 0
        delta = datetime.utcnow() - self.due_date.replace(tzinfo=None)
        return max(0, delta.days)

    @computed_field
    @property
    def accrued_fine(self) -> Money:
        """What the overdue calculation would charge right now."""
        return (Decimal(self.days_overdue) * FINE_PER_DAY).quantize(Decimal("0.01"))

    @classmethod
    def from_loan(cls, loan) -> "LoanDetail":
        """Builds from a Loan with user and item loaded."""
        user = getattr(loan, "user", None)
        item = getattr(loan, "item", None)

        return cls(
            id=loan.id,
            user_id=loan.user_id,
            user_name=user.name if user else None,
            user_email=user.email if user else None,
            item_id=loan.item_id,
            item_title=item.title if item else None,
            item_code=item.unique_item_id if item else None,
            loan_date=loan.loan_date,
            due_date=loan.due_date,
            return_date=loan.return_date,
            status=loan.status,
            renewal_count=loan.renewal_count,
        )


class LoanReturn(BaseModel):
    """Return result."""

    loan: LoanDetail
    message: str
    reservation_notified: bool = Field(
        False,
        description="True when the next reservation holder was emailed",
    )
    fine_amount: Money | None = Field(
        None,
        description="Late return fee issued with this return, if any",
    )


class LoanRenew(BaseModel):
    """Renewal result."""

    loan: LoanDetail
    previous_due_date: datetime
    new_due_date: datetime
    message: str


class NotificationResult(BaseModel):
    """Outcome of a bulk notification run."""

    message: str
    notified: int
    failed: int = 0
