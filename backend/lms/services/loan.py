"""
Loan business logic.

Business rules:
    - Loan period: 14 days
    - At most 5 open loans per user
    - At most 2 renewals, never while overdue or while the item has
      pending reservations
    - Checkout locks the item row; the loan and the item status are
      committed together
    - A late return issues the overdue fine in the same transaction
      unless the loan already carries a PENDING or PAID one
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.deps import is_staff
from lms.models.fine import Fine
from lms.models.loan import Loan
from lms.models.user import User
from lms.models.enums import ActivityType, FineStatus, ItemStatus, LoanStatus, ReservationStatus
from lms.repositories.fine import FineRepository
from lms.repositories.item import LibraryItemRepository
from lms.repositories.loan import LoanRepository
from lms.repositories.reservation import ReservationRepository
from lms.repositories.user import UserRepository
from lms.schemas.fine import FINE_PAYMENT_DAYS, overdue_reason
from lms.schemas.loan import (
    LoanDetail,
    LoanRenew,
    LoanReturn,
    NotificationResult,
    LOAN_PERIOD_DAYS,
    MAX_ACTIVE_LOANS,
    MAX_RENEWALS,
)
from lms.services.activity import ActivityService
from lms.services.fine import calculate_fine_amount
from lms.services.mailer import MailerService

logger = logging.getLogger(__name__)


class LoanService:
    """Loan operations."""

    def __init__(self, db: AsyncSession, mailer: MailerService | None = None):
        self.db = db
        self.loan_repo = LoanRepository(db)
        self.item_repo = LibraryItemRepository(db)
        self.user_repo = UserRepository(db)
        self.reservation_repo = ReservationRepository(db)
        self.fine_repo = FineRepository(db)
        self.activity = ActivityService(db)
        self.mailer = mailer or MailerService()

    # ==========================================
    # Checkout
    # ==========================================

    async def borrow(self, user: User, item_id: UUID) -> LoanDetail:
        """
        Self-service checkout for the authenticated user.

        Raises:
            HTTPException 400: Limit reached, item archived or unavailable
            HTTPException 404: Item not found
            HTTPException 409: Item held for another reservation
        """
        loan = await self._checkout(user, item_id)
        return await self._after_checkout(loan, actor=user)

    async def create_for_user(self, user_id: UUID, item_id: UUID, staff: User) -> LoanDetail:
        """
        Desk checkout on behalf of a patron.

        Raises:
            HTTPException 404: User or item not found
            HTTPException 400/409: Same rules as borrow
        """
        borrower = await self.user_repo.get_by_id(user_id)
        if borrower is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        loan = await self._checkout(borrower, item_id)
        return await self._after_checkout(loan, actor=staff)

    async def _checkout(self, borrower: User, item_id: UUID) -> Loan:
        """
        Creates the loan and flips the item to BORROWED in one commit.

        When the borrower heads the item queue, their reservation is
        fulfilled by this loan.
        """
        if not borrower.is_active or not borrower.is_verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User must be active and verified to borrow",
            )

        active_count = await self.loan_repo.count_active_by_user(borrower.id)
        if active_count >= MAX_ACTIVE_LOANS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"User already has {MAX_ACTIVE_LOANS} active loans",
            )

        # Row lock: concurrent checkouts of the same item serialize here
        item = await self.item_repo.get_by_id_for_update(item_id)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Library item not found",
            )
        if item.is_archived:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Item is archived",
            )
        if item.status != ItemStatus.AVAILABLE:
            detail = (
                "Item already borrowed"
                if item.status == ItemStatus.BORROWED
                else f"Item is not available ({item.status.value})"
            )
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

        head = await self.reservation_repo.get_first_pending(item.id)
        if head is not None and head.user_id != borrower.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Item is reserved for another patron",
            )

        now = datetime.utcnow()
        loan = Loan(
            user=borrower,
            item=item,
            loan_date=now,
            due_date=now + timedelta(days=LOAN_PERIOD_DAYS),
            status=LoanStatus.BORROWED,
            renewal_count=0,
        )
        item.status = ItemStatus.BORROWED
        self.db.add(loan)

        if head is not None:
            head.status = ReservationStatus.FULFILLED
            head.loan = loan

        await self.db.commit()
        logger.info(f"Loan created: {loan.id} item={item.unique_item_id} user={borrower.email}")
        return loan

    async def _after_checkout(self, loan: Loan, actor: User) -> LoanDetail:
        loan = await self.loan_repo.get_with_relations(loan.id)
        await self.activity.log(
            loan.user_id,
            ActivityType.LOAN_CREATED,
            f"{loan.item.title} due {loan.due_date:%Y-%m-%d} (by {actor.email})",
        )
        await self.mailer.send_loan_email(loan.user.email, loan.user.name, loan.item.title, loan.due_date)
        return LoanDetail.from_loan(loan)

    # ==========================================
    # Return
    # ==========================================

    async def return_loan(self, loan_id: UUID) -> LoanReturn:
        """
        Closes a loan and frees the item.

        After the commit the borrower gets a receipt and the head of the
        item's reservation queue is told the item is back.

        Raises:
            HTTPException 404: Loan not found
            HTTPException 409: Loan already returned
        """
        loan = await self.loan_repo.get_by_id_for_update(loan_id)
        if not loan:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Loan not found",
            )
        if loan.status == LoanStatus.RETURNED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Loan already returned",
            )

        item = await self.item_repo.get_by_id_for_update(loan.item_id)
        now = datetime.utcnow()
        was_overdue = loan.is_overdue
        days_overdue = loan.days_overdue

        loan.status = LoanStatus.RETURNED
        loan.return_date = now
        if item is not None and item.status == ItemStatus.BORROWED:
            item.status = ItemStatus.AVAILABLE

        fine = None
        if was_overdue and days_overdue >= 1:
            fine = await self._issue_late_return_fine(loan, days_overdue, now)
        await self.db.commit()

        loan = await self.loan_repo.get_with_relations(loan_id)
        logger.info(f"Loan returned: {loan.id} item={loan.item.unique_item_id}")

        await self.activity.log(loan.user_id, ActivityType.LOAN_RETURNED, loan.item.title)
        if fine is not None:
            logger.info(f"Late return fine issued: loan={loan.id} amount={fine.amount}")
            await self.activity.log(loan.user_id, ActivityType.FINE_APPLIED, f"{fine.amount} - {fine.reason}")
        await self.mailer.send_return_email(loan.user.email, loan.user.name, loan.item.title, now)
        notified = await self._notify_next_reservation(loan.item_id)

        if fine is not None:
            message = f"Item returned {days_overdue} day(s) late. A fine of {fine.amount} was issued."
        elif was_overdue and days_overdue >= 1:
            message = f"Item returned {days_overdue} day(s) late. The overdue fine was already issued."
        else:
            message = "Item returned successfully"

        return LoanReturn(
            loan=LoanDetail.from_loan(loan),
            message=message,
            reservation_notified=notified,
            fine_amount=fine.amount if fine is not None else None,
        )

    async def _issue_late_return_fine(self, loan: Loan, days_overdue: int, now: datetime) -> Fine | None:
        """Adds the overdue fine for a loan being returned, unless one already blocks it."""
        blocking = await self.fine_repo.get_loan_ids_with_blocking_fine([loan.id])
        if loan.id in blocking:
            return None

        fine = Fine(
            user_id=loan.user_id,
            loan_id=loan.id,
            amount=calculate_fine_amount(days_overdue),
            reason=overdue_reason(days_overdue),
            status=FineStatus.PENDING,
            due_date=now + timedelta(days=FINE_PAYMENT_DAYS),
        )
        self.db.add(fine)
        return fine

    async def _notify_next_reservation(self, item_id: UUID) -> bool:
        """Emails the head of the item queue, if any."""
        head = await self.reservation_repo.get_first_pending(item_id)
        if head is None:
            return False
        return await self.mailer.send_item_available_email(
            head.user.email,
            head.user.name,
            head.item.title,
        )

    # ==========================================
    # Renew
    # ==========================================

    async def renew_loan(self, loan_id: UUID, actor: User) -> LoanRenew:
        """
        Extends the due date by one loan period.

        Rules:
            1. Owner or staff only
            2. Loan still open
            3. Not overdue
            4. renewal_count < MAX_RENEWALS
            5. No pending reservation on the item

        Raises:
            HTTPException 400: Overdue, limit reached, pending reservations
            HTTPException 403: Not the owner
            HTTPException 404: Loan not found
            HTTPException 409: Loan already returned
        """
        loan = await self.get_loan_by_id(loan_id)

        if not is_staff(actor) and loan.user_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="This loan does not belong to you",
            )
        if loan.status == LoanStatus.RETURNED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot renew a returned loan",
            )
        if loan.is_overdue:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot renew an overdue loan",
            )
        if loan.renewal_count >= MAX_RENEWALS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Renewal limit reached (max {MAX_RENEWALS})",
            )
        if await self.reservation_repo.has_pending_for_item(loan.item_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot renew: the item has pending reservations",
            )

        previous_due_date = loan.due_date
        new_due_date = loan.due_date.replace(tzinfo=None) + timedelta(days=LOAN_PERIOD_DAYS)
        loan.due_date = new_due_date
        loan.renewal_count += 1
        await self.db.commit()

        loan = await self.loan_repo.get_with_relations(loan_id)
        await self.activity.log(
            loan.user_id,
            ActivityType.LOAN_RENEWED,
            f"{loan.item.title} due {new_due_date:%Y-%m-%d}",
        )

        return LoanRenew(
            loan=LoanDetail.from_loan(loan),
            previous_due_date=previous_due_date,
            new_due_date=new_due_date,
            message=f"Loan renewed. New due date: {new_due_date:%Y-%m-%d}",
        )

    # ==========================================
    # Queries
    # ==========================================

    async def get_loan_by_id(self, loan_id: UUID) -> Loan:
        """
        Raises:
            HTTPException 404: Loan not found
        """
        loan = await self.loan_repo.get_with_relations(loan_id)
        if not loan:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Loan not found",
            )
        return loan

    async def get_loan_detail(self, loan_id: UUID, actor: User) -> LoanDetail:
        """
        Raises:
            HTTPException 403: Patron reading someone else's loan
            HTTPException 404: Loan not found
        """
        loan = await self.get_loan_by_id(loan_id)
        if not is_staff(actor) and loan.user_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to view this loan",
            )
        return LoanDetail.from_loan(loan)

    async def list_loans(
        self,
        user_id: UUID | None = None,
        item_id: UUID | None = None,
        status_filter: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[LoanDetail], int]:
        loans, total = await self.loan_repo.search(
            user_id=user_id,
            item_id=item_id,
            status=status_filter,
            page=page,
            page_size=page_size,
        )
        return [LoanDetail.from_loan(loan) for loan in loans], total

    async def get_user_loans(self, user_id: UUID) -> list[LoanDetail]:
        loans = await self.loan_repo.get_by_user(user_id)
        return [LoanDetail.from_loan(loan) for loan in loans]

    async def get_overdue_loans(self) -> list[LoanDetail]:
        loans = await self.loan_repo.get_overdue_loans()
        return [LoanDetail.from_loan(loan) for loan in loans]

    # ==========================================
    # Notifications
    # ==========================================

    async def send_due_date_reminders(self) -> NotificationResult:
        """Emails every borrower whose loan falls due in the next 24 hours."""
        now = datetime.utcnow()
        loans = await self.loan_repo.get_due_between(now, now + timedelta(days=1))

        sent = failed = 0
        for loan in loans:
            ok = await self.mailer.send_due_reminder_email(
                loan.user.email,
                loan.user.name,
                loan.item.title,
                loan.due_date,
            )
            if ok:
                sent += 1
            else:
                failed += 1

        logger.info(f"Due date reminders: {sent} sent, {failed} failed")
        return NotificationResult(
            message=f"{sent} due date reminder(s) sent",
            notified=sent,
            failed=failed,
        )

    async def send_overdue_notifications(self) -> NotificationResult:
        """Emails every borrower with an overdue loan and the fee accrued so far."""
        loans = await self.loan_repo.get_overdue_loans()

        sent = failed = 0
        for loan in loans:
            detail = LoanDetail.from_loan(loan)
            ok = await self.mailer.send_overdue_email(
                loan.user.email,
                loan.user.name,
                loan.item.title,
                detail.days_overdue,
                detail.accrued_fine,
            )
            if ok:
                sent += 1
            else:
                failed += 1

        logger.info(f"Overdue notifications: {sent} sent, {failed} failed")
        return NotificationResult(
            message=f"{sent} overdue notification(s) sent",
            notified=sent,
            failed=failed,
        )
