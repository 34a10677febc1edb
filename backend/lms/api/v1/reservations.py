"""
Reservation endpoints.

Contracts:
    - POST /reservations: Reserve an unavailable item
    - GET /reservations: Every reservation with filters (staff)
    - GET /reservations/my: Own reservations with queue positions
    - PATCH /reservations/{id}/approve: Turn the queue head into a loan (staff)
    - DELETE /reservations/{id}: Cancel (owner or staff)
    - POST /reservations/expire: Expire lapsed reservations (staff)

Status codes:
    - 200: Success
    - 201: Created
    - 400: Item available, archived or already borrowed by the user
    - 401: Not authenticated
    - 403: Not allowed
    - 404: Reservation or item not found
    - 409: Duplicate, already processed, expired or out of queue order
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from lms.core.deps import CurrentUser, DbSession, StaffUser
from lms.models.enums import ReservationStatus
from lms.schemas.base import PaginatedResponse
from lms.schemas.reservation import (
    ExpireReservationsResult,
    ReservationApproveResponse,
    ReservationCreate,
    ReservationDetail,
)
from lms.services.reservation import ReservationService

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post(
    "",
    response_model=ReservationDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Reserve an item",
    description="Only items that are not AVAILABLE can be reserved. Valid for 7 days.",
)
async def create_reservation(
    data: ReservationCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> ReservationDetail:
    service = ReservationService(db)
    return await service.create_reservation(current_user, data.item_id)


@router.get(
    "",
    response_model=PaginatedResponse[ReservationDetail],
    summary="List reservations",
    description="Oldest first. **Requires LIBRARIAN or ADMIN.**",
)
async def list_reservations(
    db: DbSession,
    staff: StaffUser,
    status_filter: ReservationStatus | None = Query(None, alias="status"),
    item_id: UUID | None = Query(None),
    user_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ReservationDetail]:
    service = ReservationService(db)
    reservations, total = await service.list_reservations(
        status_filter=status_filter,
        item_id=item_id,
        user_id=user_id,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=reservations,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/my",
    response_model=list[ReservationDetail],
    summary="My reservations",
)
async def my_reservations(
    db: DbSession,
    current_user: CurrentUser,
) -> list[ReservationDetail]:
    service = ReservationService(db)
    return await service.get_user_reservations(current_user.id)


@router.post(
    "/expire",
    response_model=ExpireReservationsResult,
    summary="Expire lapsed reservations",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def expire_reservations(
    db: DbSession,
    staff: StaffUser,
) -> ExpireReservationsResult:
    service = ReservationService(db)
    return await service.expire_reservations()


@router.patch(
    "/{reservation_id}/approve",
    response_model=ReservationApproveResponse,
    summary="Approve a reservation",
    description="Creates the loan and marks the reservation FULFILLED. **Requires LIBRARIAN or ADMIN.**",
)
async def approve_reservation(
    reservation_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> ReservationApproveResponse:
    """
    Raises:
        400: Owner inactive or at the loan limit
        404: Reservation not found
        409: Already processed, expired, not first in line, item unavailable
    """
    service = ReservationService(db)
    return await service.approve_reservation(reservation_id, staff)


@router.delete(
    "/{reservation_id}",
    response_model=ReservationDetail,
    summary="Cancel a reservation",
)
async def cancel_reservation(
    reservation_id: UUID,
    db: DbSession,
    current_user: CurrentUser,
) -> ReservationDetail:
    service = ReservationService(db)
    return await service.cancel_reservation(reservation_id, current_user)
