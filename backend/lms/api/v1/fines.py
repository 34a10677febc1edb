"""
Fine endpoints.

Contracts:
    - POST /fines: Issue a manual fine (staff)
    - GET /fines: Every fine with filters (staff)
    - GET /fines/my: Own fines with totals
    - GET /fines/{id}: Fine detail (owner or staff)
    - PATCH /fines/{id}/pay: Mark paid (staff)
    - PATCH /fines/{id}/waive: Waive (staff)
    - DELETE /fines/{id}: Delete a pending fine (admin)
    - POST /fines/calculate-overdue: Issue fines for overdue loans (staff)
    - POST /fines/{id}/send-reminder: Email the debtor (staff)

Status codes:
    - 200: Success
    - 201: Created
    - 204: Deleted
    - 400: Loan belongs to another user, debtor without email
    - 401: Not authenticated
    - 403: Not allowed
    - 404: Fine, user or loan not found
    - 409: Fine already PAID or WAIVED
    - 502: Reminder email could not be delivered
"""

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from lms.core.deps import AdminUser, CurrentUser, DbSession, StaffUser
from lms.models.enums import FineStatus
from lms.schemas.base import PaginatedResponse
from lms.schemas.fine import (
    FineCreate,
    FineDetail,
    FineReminderResult,
    MyFines,
    OverdueCalculationResult,
)
from lms.services.fine import FineService

router = APIRouter(prefix="/fines", tags=["Fines"])


@router.post(
    "",
    response_model=FineDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a fine",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def create_fine(
    data: FineCreate,
    db: DbSession,
    staff: StaffUser,
) -> FineDetail:
    service = FineService(db)
    return await service.create_fine(data, staff)


@router.get(
    "",
    response_model=PaginatedResponse[FineDetail],
    summary="List fines",
    description="Newest first. **Requires LIBRARIAN or ADMIN.**",
)
async def list_fines(
    db: DbSession,
    staff: StaffUser,
    status_filter: FineStatus | None = Query(None, alias="status"),
    user_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[FineDetail]:
    service = FineService(db)
    fines, total = await service.list_fines(
        status_filter=status_filter,
        user_id=user_id,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=fines,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/my",
    response_model=MyFines,
    summary="My fines",
)
async def my_fines(
    db: DbSession,
    current_user: CurrentUser,
) -> MyFines:
    service = FineService(db)
    return await service.get_my_fines(current_user)


@router.post(
    "/calculate-overdue",
    response_model=OverdueCalculationResult,
    summary="Calculate overdue fines",
    description=(
        "Creates one PENDING fine per overdue loan that has no PENDING or PAID "
        "fine yet. **Requires LIBRARIAN or ADMIN.**"
    ),
)
async def calculate_overdue(
    db: DbSession,
    staff: StaffUser,
) -> OverdueCalculationResult:
    """
    Amount = whole days overdue x 1.50. Running it twice creates nothing new
    for loans already fined.
    """
    service = FineService(db)
    return await service.calculate_overdue_fines()


@router.get(
    "/{fine_id}",
    response_model=FineDetail,
    summary="Fine detail",
)
async def get_fine(
    fine_id: UUID,
    db: DbSession,
    current_user: CurrentUser,
) -> FineDetail:
    service = FineService(db)
    return await service.get_fine(fine_id, current_user)


@router.patch(
    "/{fine_id}/pay",
    response_model=FineDetail,
    summary="Mark a fine as paid",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def pay_fine(
    fine_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> FineDetail:
    service = FineService(db)
    return await service.pay_fine(fine_id, staff)


@router.patch(
    "/{fine_id}/waive",
    response_model=FineDetail,
    summary="Waive a fine",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def waive_fine(
    fine_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> FineDetail:
    service = FineService(db)
    return await service.waive_fine(fine_id, staff)


@router.delete(
    "/{fine_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a pending fine",
    description="**Requires ADMIN.**",
)
async def delete_fine(
    fine_id: UUID,
    db: DbSession,
    admin: AdminUser,
) -> Response:
    service = FineService(db)
    await service.delete_fine(fine_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{fine_id}/send-reminder",
    response_model=FineReminderResult,
    summary="Email a fine reminder",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def send_reminder(
    fine_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> FineReminderResult:
    service = FineService(db)
    return await service.send_fine_reminder(fine_id)
