"""
Loan endpoints.

Contracts:
    - POST /loans/borrow: Self-service checkout
    - POST /loans/create-for-user: Desk checkout (staff)
    - GET /loans/my-loans: Own loans
    - GET /loans/all: Every loan with filters (staff)
    - GET /loans/overdue: Open loans past due (staff)
    - GET /loans/user/{user_id}: Loans of a user (staff)
    - GET /loans/{id}: Loan detail (owner or staff)
    - PATCH /loans/{id}/return: Check an item back in (staff)
    - PATCH /loans/{id}/renew: Extend the due date (owner or staff)
    - POST /loans/send-due-reminders: Email loans due in 24h (staff)
    - POST /loans/send-overdue-notifications: Email overdue loans (staff)

Status codes:
    - 200: Success
    - 201: Created
    - 400: Business rule violated
    - 401: Not authenticated
    - 403: Not allowed
    - 404: Loan, item or user not found
    - 409: Loan already returned, item held for another patron
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from lms.core.deps import CurrentUser, DbSession, StaffUser
from lms.schemas.base import PaginatedResponse
from lms.schemas.loan import (
    BorrowRequest,
    LoanDetail,
    LoanForUserCreate,
    LoanRenew,
    LoanReturn,
    NotificationResult,
    MAX_ACTIVE_LOANS,
)
from lms.services.loan import LoanService

router = APIRouter(prefix="/loans", tags=["Loans"])


@router.post(
    "/borrow",
    response_model=LoanDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Borrow an item",
    description=f"Creates a 14-day loan. Limit: {MAX_ACTIVE_LOANS} open loans per user.",
)
async def borrow(
    data: BorrowRequest,
    db: DbSession,
    current_user: CurrentUser,
) -> LoanDetail:
    """
    Raises:
        400: Loan limit reached, item archived or not available
        404: Item not found
        409: Item held for another reservation
    """
    service = LoanService(db)
    return await service.borrow(current_user, data.item_id)


@router.post(
    "/create-for-user",
    response_model=LoanDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Check out for a patron",
    description="Desk checkout on behalf of another user. **Requires LIBRARIAN or ADMIN.**",
)
async def create_for_user(
    data: LoanForUserCreate,
    db: DbSession,
    staff: StaffUser,
) -> LoanDetail:
    service = LoanService(db)
    return await service.create_for_user(data.user_id, data.item_id, staff)


@router.get(
    "/my-loans",
    response_model=list[LoanDetail],
    summary="My loans",
    description="Open loans first, then history.",
)
async def my_loans(
    db: DbSession,
    current_user: CurrentUser,
) -> list[LoanDetail]:
    service = LoanService(db)
    return await service.get_user_loans(current_user.id)


@router.get(
    "/all",
    response_model=PaginatedResponse[LoanDetail],
    summary="List loans",
    description="Every loan with filters. **Requires LIBRARIAN or ADMIN.**",
)
async def list_loans(
    db: DbSession,
    staff: StaffUser,
    user_id: UUID | None = Query(None, description="Filter by borrower"),
    item_id: UUID | None = Query(None, description="Filter by item"),
    status_filter: str | None = Query(
        None,
        alias="status",
        pattern="^(active|returned|overdue)$",
        description="active, returned or overdue",
    ),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[LoanDetail]:
    service = LoanService(db)
    loans, total = await service.list_loans(
        user_id=user_id,
        item_id=item_id,
        status_filter=status_filter,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=loans,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/overdue",
    response_model=list[LoanDetail],
    summary="Overdue loans",
    description="Open loans past their due date. **Requires LIBRARIAN or ADMIN.**",
)
async def list_overdue_loans(
    db: DbSession,
    staff: StaffUser,
) -> list[LoanDetail]:
    service = LoanService(db)
    return await service.get_overdue_loans()


@router.get(
    "/user/{user_id}",
    response_model=list[LoanDetail],
    summary="Loans of a user",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def user_loans(
    user_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> list[LoanDetail]:
    service = LoanService(db)
    return await service.get_user_loans(user_id)


@router.post(
    "/send-due-reminders",
    response_model=NotificationResult,
    summary="Email loans due in the next 24 hours",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def send_due_reminders(
    db: DbSession,
    staff: StaffUser,
) -> NotificationResult:
    service = LoanService(db)
    return await service.send_due_date_reminders()


@router.post(
    "/send-overdue-notifications",
    response_model=NotificationResult,
    summary="Email every overdue borrower",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def send_overdue_notifications(
    db: DbSession,
    staff: StaffUser,
) -> NotificationResult:
    service = LoanService(db)
    return await service.send_overdue_notifications()


@router.get(
    "/{loan_id}",
    response_model=LoanDetail,
    summary="Loan detail",
)
async def get_loan(
    loan_id: UUID,
    db: DbSession,
    current_user: CurrentUser,
) -> LoanDetail:
    """
    Raises:
        403: Patron reading someone else's loan
        404: Loan not found
    """
    service = LoanService(db)
    return await service.get_loan_detail(loan_id, current_user)


@router.patch(
    "/{loan_id}/return",
    response_model=LoanReturn,
    summary="Return an item",
    description="Closes the loan and frees the item. **Requires LIBRARIAN or ADMIN.**",
)
async def return_loan(
    loan_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> LoanReturn:
    """
    Flow:
        1. Loan RETURNED with return_date = now
        2. Item back to AVAILABLE
        3. Receipt emailed, head of the reservation queue notified

    Raises:
        404: Loan not found
        409: Loan already returned
    """
    service = LoanService(db)
    return await service.return_loan(loan_id)


@router.patch(
    "/{loan_id}/renew",
    response_model=LoanRenew,
    summary="Renew a loan",
    description="Extends the due date by 14 days.",
)
async def renew_loan(
    loan_id: UUID,
    db: DbSession,
    current_user: CurrentUser,
) -> LoanRenew:
    """
    Rules:
        - Loan open and not overdue
        - At most 2 renewals
        - No pending reservation on the item

    Raises:
        400: Overdue, limit reached or pending reservations
        403: Not the borrower
        404: Loan not found
        409: Loan already returned
    """
    service = LoanService(db)
    return await service.renew_loan(loan_id, current_user)
