"""
Fine business logic.

Business rules:
    - Overdue fine = whole days overdue x FINE_PER_DAY, fixed at creation
    - One overdue fine per loan: loans with a PENDING or PAID fine are skipped
    - PENDING -> PAID | WAIVED; both are terminal
    - Only PENDING fines can be deleted (admin)
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.deps import is_staff
from lms.models.fine import Fine
from lms.models.user import User
from lms.models.enums import ActivityType, FineStatus
from lms.repositories.fine import FineRepository
from lms.repositories.loan import LoanRepository
from lms.repositories.user import UserRepository
from lms.schemas.fine import (
    FINE_PAYMENT_DAYS,
    FINE_PER_DAY,
    FineCreate,
    FineDetail,
    FineReminderResult,
    MyFines,
    OverdueCalculationResult,
    overdue_reason,
)
from lms.services.activity import ActivityService
from lms.services.mailer import MailerService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def calculate_fine_amount(days_overdue: int) -> Decimal:
    """Fee for a number of whole days overdue, rounded to cents."""
    return (Decimal(days_overdue) * FINE_PER_DAY).quantize(CENTS)


class FineService:
    """Fine operations."""

    def __init__(self, db: AsyncSession, mailer: MailerService | None = None):
        self.db = db
        self.fine_repo = FineRepository(db)
        self.loan_repo = LoanRepository(db)
        self.user_repo = UserRepository(db)
        self.activity = ActivityService(db)
        self.mailer = mailer or MailerService()

    # ==========================================
    # Overdue calculation
    # ==========================================

    async def calculate_overdue_fines(self) -> OverdueCalculationResult:
        """
        Issues one fine per overdue loan that has none yet.

        Scans open loans past due and locks them, so a concurrent run or
        return cannot fine the same loan twice. A loan that already carries
        a PENDING or PAID fine, or is less than a whole day late, is
        skipped. All new fines are committed together.

        Returns:
            OverdueCalculationResult with counts and the total issued
        """
        now = datetime.utcnow()
        loans = await self.loan_repo.get_overdue_loans(now, for_update=True)
        already_fined = await self.fine_repo.get_loan_ids_with_blocking_fine(
            [loan.id for loan in loans]
        )

        created: list[Fine] = []
        for loan in loans:
            if loan.id in already_fined:
                continue

            days = (now - loan.due_date.replace(tzinfo=None)).days
            if days < 1:
                continue

            fine = Fine(
                user_id=loan.user_id,
                loan_id=loan.id,
                amount=calculate_fine_amount(days),
                reason=overdue_reason(days),
                status=FineStatus.PENDING,
                due_date=now + timedelta(days=FINE_PAYMENT_DAYS),
            )
            self.db.add(fine)
            created.append(fine)

        if created:
            await self.db.commit()

        total = sum((fine.amount for fine in created), Decimal("0.00"))
        fine_ids = [fine.id for fine in created]
        logger.info(
            f"Overdue calculation: {len(loans)} loans scanned, "
            f"{len(created)} fines created, total {total}"
        )

        for fine in created:
            await self.activity.log(
                fine.user_id,
                ActivityType.FINE_APPLIED,
                f"{fine.amount} - {fine.reason}",
            )

        return OverdueCalculationResult(
            message=f"{len(created)} fine(s) created",
            loans_scanned=len(loans),
            fines_created=len(created),
            total_amount=total,
            fine_ids=fine_ids,
        )

    # ==========================================
    # CRUD
    # ==========================================

    async def create_fine(self, data: FineCreate, staff: User) -> FineDetail:
        """
        Manual fine issued by staff.

        Raises:
            HTTPException 400: Loan belongs to another user
            HTTPException 404: User or loan not found
        """
        user = await self.user_repo.get_by_id(data.user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )

        if data.loan_id is not None:
            loan = await self.loan_repo.get_by_id(data.loan_id)
            if not loan:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Loan not found",
                )
            if loan.user_id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Loan does not belong to this user",
                )

        fine = await self.fine_repo.create(
            user_id=user.id,
            loan_id=data.loan_id,
            amount=data.amount.quantize(CENTS),
            reason=data.reason,
            status=FineStatus.PENDING,
            due_date=data.due_date,
        )
        logger.info(f"Fine issued: {fine.id} {fine.amount} to {user.email} by {staff.email}")

        await self.activity.log(
            user.id,
            ActivityType.FINE_APPLIED,
            f"{fine.amount} - {fine.reason}",
        )
        return await self._detail(fine.id)

    async def list_fines(
        self,
        status_filter: FineStatus | None = None,
        user_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[FineDetail], int]:
        fines, total = await self.fine_repo.search(
            status=status_filter,
            user_id=user_id,
            page=page,
            page_size=page_size,
        )
        return [FineDetail.from_fine(fine) for fine in fines], total

    async def get_my_fines(self, user: User) -> MyFines:
        """The user's fines with a total per status."""
        fines = await self.fine_repo.get_by_user(user.id)

        totals = {s: Decimal("0.00") for s in FineStatus}
        for fine in fines:
            totals[fine.status] += Decimal(fine.amount)

        return MyFines(
            items=[FineDetail.from_fine(fine) for fine in fines],
            total_pending=totals[FineStatus.PENDING].quantize(CENTS),
            total_paid=totals[FineStatus.PAID].quantize(CENTS),
            total_waived=totals[FineStatus.WAIVED].quantize(CENTS),
        )

    async def get_fine(self, fine_id: UUID, actor: User) -> FineDetail:
        """
        Raises:
            HTTPException 403: Patron reading someone else's fine
            HTTPException 404: Fine not found
        """
        fine = await self._get_fine(fine_id)
        if not is_staff(actor) and fine.user_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this fine",
            )
        return FineDetail.from_fine(fine)

    # ==========================================
    # Transitions
    # ==========================================

    async def pay_fine(self, fine_id: UUID, staff: User) -> FineDetail:
        """
        PENDING -> PAID.

        Raises:
            HTTPException 404: Fine not found
            HTTPException 409: Fine already settled
        """
        fine = await self._get_pending_for_update(fine_id)

        fine.status = FineStatus.PAID
        fine.paid_at = datetime.utcnow()
        await self.db.commit()

        logger.info(f"Fine paid: {fine.id} {fine.amount} (desk: {staff.email})")
        await self.activity.log(fine.user_id, ActivityType.FINE_PAID, f"{fine.amount}")
        return await self._detail(fine_id)

    async def waive_fine(self, fine_id: UUID, staff: User) -> FineDetail:
        """
        PENDING -> WAIVED, recording who waived it.

        Raises:
            HTTPException 404: Fine not found
            HTTPException 409: Fine already settled
        """
        fine = await self._get_pending_for_update(fine_id)

        fine.status = FineStatus.WAIVED
        fine.waived_at = datetime.utcnow()
        fine.waived_by_id = staff.id
        await self.db.commit()

        logger.info(f"Fine waived: {fine.id} {fine.amount} by {staff.email}")
        await self.activity.log(
            fine.user_id,
            ActivityType.FINE_WAIVED,
            f"{fine.amount} by {staff.email}",
        )
        return await self._detail(fine_id)

    async def delete_fine(self, fine_id: UUID) -> None:
        """
        Hard delete, only while PENDING.

        Raises:
            HTTPException 404: Fine not found
            HTTPException 409: Fine already settled
        """
        fine = await self._get_pending_for_update(fine_id)
        await self.fine_repo.delete(fine)
        logger.info(f"Fine deleted: {fine_id}")

    # ==========================================
    # Reminder
    # ==========================================

    async def send_fine_reminder(self, fine_id: UUID) -> FineReminderResult:
        """
        Emails the debtor about a PENDING fine. State is left untouched.

        Raises:
            HTTPException 400: Debtor has no email
            HTTPException 404: Fine not found
            HTTPException 409: Fine not PENDING
            HTTPException 502: Mail delivery failed
        """
        fine = await self._get_fine(fine_id)
        if fine.status != FineStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Fine is already {fine.status.value}",
            )

        user = fine.user
        if user is None or not user.email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User email not found",
            )

        title = fine.loan.item.title if fine.loan and fine.loan.item else None
        sent = await self.mailer.send_fine_reminder_email(
            user.email,
            user.name,
            fine.amount,
            fine.reason,
            fine.due_date,
            title=title,
        )
        if not sent:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to send email reminder",
            )

        await self.activity.log(user.id, ActivityType.FINE_REMINDER_SENT, f"{fine.amount}")
        return FineReminderResult(
            message="Fine reminder sent",
            sent_to=user.email,
        )

    # ==========================================
    # Helpers
    # ==========================================

    async def _get_fine(self, fine_id: UUID) -> Fine:
        fine = await self.fine_repo.get_with_relations(fine_id)
        if not fine:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Fine not found",
            )
        return fine

    async def _get_pending_for_update(self, fine_id: UUID) -> Fine:
        fine = await self.fine_repo.get_by_id_for_update(fine_id)
        if not fine:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Fine not found",
            )
        if fine.status != FineStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Fine is already {fine.status.value}",
            )
        return fine

    async def _detail(self, fine_id: UUID) -> FineDetail:
        fine = await self.fine_repo.get_with_relations(fine_id)
        return FineDetail.from_fine(fine)
