"""
Reservation schemas.
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from lms.models.enums import ReservationStatus
from lms.schemas.base import BaseSchema, TimestampSchema
from lms.schemas.loan import LoanDetail

RESERVATION_EXPIRY_DAYS = 7


class ReservationCreate(BaseSchema):
    item_id: UUID


class ReservationRead(TimestampSchema):
    id: UUID
    user_id: UUID
    item_id: UUID
    status: ReservationStatus
    expires_at: datetime
    loan_id: UUID | None = None


class ReservationDetail(ReservationRead):
    """Reservation with names and queue position."""
    user_name: str | None = None
    user_email: str | None = None
    item_title: str | None = None
    item_status: str | None = None
    queue_position: int | None = Field(
        None,
        description="Position in the item queue (PENDING only)",
    )

    @classmethod
    def from_reservation(
        cls,
        reservation,
        queue_position: int | None = None,
    ) -> "ReservationDetail":
        """Builds from a Reservation with user and item loaded."""
        user = getattr(reservation, "user", None)
        item = getattr(reservation, "item", None)
        return cls(
            id=reservation.id,
            user_id=reservation.user_id,
            item_id=reservation.item_id,
            status=reservation.status,
            expires_at=reservation.expires_at,
            loan_id=reservation.loan_id,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
            user_name=user.name if user else None,
            user_email=user.email if user else None,
            item_title=item.title if item else None,
            item_status=item.status.value if item else None,
            queue_position=queue_position,
        )


class ReservationApproveResponse(BaseSchema):
    """Approval result: the fulfilled reservation and its new loan."""
    reservation: ReservationDetail
    loan: LoanDetail
    message: str


class ExpireReservationsResult(BaseSchema):
    expired: int
    message: str
