"""
Reservation business logic.

Business rules:
    - Only unavailable items can be reserved
    - One PENDING reservation per user and item
    - Queue is FIFO by created_at; staff approve the head of the queue
    - A PENDING reservation lapses after 7 days
    - Approval creates the loan in the same commit as the status change
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.deps import is_staff
from lms.models.loan import Loan
from lms.models.reservation import Reservation
from lms.models.user import User
from lms.models.enums import ActivityType, ItemStatus, LoanStatus, ReservationStatus
from lms.repositories.item import LibraryItemRepository
from lms.repositories.loan import LoanRepository
from lms.repositories.reservation import ReservationRepository
from lms.schemas.loan import LoanDetail, LOAN_PERIOD_DAYS, MAX_ACTIVE_LOANS
from lms.schemas.reservation import (
    RESERVATION_EXPIRY_DAYS,
    ExpireReservationsResult,
    ReservationApproveResponse,
    ReservationDetail,
)
from lms.services.activity import ActivityService
from lms.services.mailer import MailerService

logger = logging.getLogger(__name__)


class ReservationService:
    """Reservation operations."""

    def __init__(self, db: AsyncSession, mailer: MailerService | None = None):
        self.db = db
        self.reservation_repo = ReservationRepository(db)
        self.item_repo = LibraryItemRepository(db)
        self.loan_repo = LoanRepository(db)
        self.activity = ActivityService(db)
        self.mailer = mailer or MailerService()

    # ==========================================
    # Create
    # ==========================================

    async def create_reservation(self, user: User, item_id: UUID) -> ReservationDetail:
        """
        Places a reservation on an unavailable item.

        Args:
            user: Requesting user
            item_id: Item to reserve

        Returns:
            ReservationDetail with the queue position

        Raises:
            HTTPException 400: Item archived, available, or already on loan
                to the user
            HTTPException 404: Item not found
            HTTPException 409: Duplicate pending reservation
        """
        await self.reservation_repo.expire_stale()

        item = await self.item_repo.get_by_id(item_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Library item not found",
            )
        if item.is_archived:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Item is archived",
            )
        if item.status == ItemStatus.AVAILABLE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Item is available, borrow it directly",
            )
        if await self.loan_repo.get_active_by_user_and_item(user.id, item_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You already have this item borrowed",
            )
        if await self.reservation_repo.get_pending_by_user_and_item(user.id, item_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="You already have a pending reservation for this item",
            )

        reservation = await self.reservation_repo.create(
            user_id=user.id,
            item_id=item_id,
            status=ReservationStatus.PENDING,
            expires_at=datetime.utcnow() + timedelta(days=RESERVATION_EXPIRY_DAYS),
        )
        reservation = await self.reservation_repo.get_with_relations(reservation.id)
        position = await self.reservation_repo.get_queue_position(reservation)
        logger.info(f"Reservation placed: {reservation.id} item={item.unique_item_id} position={position}")

        await self.activity.log(user.id, ActivityType.RESERVATION_PLACED, item.title)
        await self.mailer.send_reservation_email(
            user.email,
            user.name,
            item.title,
            reservation.expires_at,
        )
        return ReservationDetail.from_reservation(reservation, position)

    # ==========================================
    # Approve
    # ==========================================

    async def approve_reservation(self, reservation_id: UUID, staff: User) -> ReservationApproveResponse:
        """
        Converts the head of an item queue into a loan.

        Rules:
            1. Reservation PENDING and not expired
            2. No older PENDING reservation for the item
            3. Borrower under the open loan limit
            4. Item AVAILABLE (row locked)
            5. Reservation still PENDING once locked

        Raises:
            HTTPException 400: Borrower inactive or at the loan limit
            HTTPException 404: Reservation not found
            HTTPException 409: Already processed, expired, not first in
                line, or item not available
        """
        reservation = await self._get_reservation(reservation_id)

        if reservation.status != ReservationStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Reservation already processed",
            )
        if reservation.is_expired:
            reservation.status = ReservationStatus.EXPIRED
            await self.db.commit()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Reservation has expired",
            )

        await self.reservation_repo.expire_stale()

        head = await self.reservation_repo.get_first_pending(reservation.item_id)
        if head is not None and head.id != reservation.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An older reservation for this item is still pending",
            )

        borrower = reservation.user
        if not borrower.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reservation owner account is inactive",
            )
        if await self.loan_repo.count_active_by_user(borrower.id) >= MAX_ACTIVE_LOANS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"User already has {MAX_ACTIVE_LOANS} active loans",
            )

        item = await self.item_repo.get_by_id_for_update(reservation.item_id)
        if item is None or item.is_archived or item.status != ItemStatus.AVAILABLE:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Item is no longer available",
            )

        # A cancel may have committed while we waited on the item lock
        reservation = await self._get_reservation(reservation_id, for_update=True)
        if reservation.status != ReservationStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Reservation already processed",
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
        self.db.add(loan)
        item.status = ItemStatus.BORROWED
        reservation.status = ReservationStatus.FULFILLED
        reservation.loan = loan
        await self.db.commit()

        logger.info(f"Reservation approved: {reservation.id} -> loan {loan.id}")

        reservation = await self.reservation_repo.get_with_relations(reservation_id)
        loan = await self.loan_repo.get_with_relations(loan.id)

        await self.activity.log(
            borrower.id,
            ActivityType.RESERVATION_APPROVED,
            f"{item.title} (by {staff.email})",
        )
        await self.mailer.send_reservation_approved_email(
            borrower.email,
            borrower.name,
            item.title,
            loan.due_date,
        )

        return ReservationApproveResponse(
            reservation=ReservationDetail.from_reservation(reservation),
            loan=LoanDetail.from_loan(loan),
            message="Reservation approved and loan created",
        )

    # ==========================================
    # Cancel / expire
    # ==========================================

    async def cancel_reservation(self, reservation_id: UUID, actor: User) -> ReservationDetail:
        """
        Raises:
            HTTPException 403: Patron cancelling someone else's reservation
            HTTPException 404: Reservation not found
            HTTPException 409: Reservation not PENDING
        """
        reservation = await self._get_reservation(reservation_id, for_update=True)

        if not is_staff(actor) and reservation.user_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only cancel your own reservations",
            )
        if reservation.status != ReservationStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot cancel a {reservation.status.value} reservation",
            )

        reservation.status = ReservationStatus.CANCELLED
        await self.db.commit()
        reservation = await self.reservation_repo.get_with_relations(reservation_id)

        await self.activity.log(
            reservation.user_id,
            ActivityType.RESERVATION_CANCELLED,
            reservation.item.title,
        )
        await self.mailer.send_reservation_cancelled_email(
            reservation.user.email,
            reservation.user.name,
            reservation.item.title,
        )
        return ReservationDetail.from_reservation(reservation)

    async def expire_reservations(self) -> ExpireReservationsResult:
        """Marks every lapsed PENDING reservation EXPIRED."""
        expired = await self.reservation_repo.expire_stale()
        if expired:
            logger.info(f"Reservations expired: {expired}")
        return ExpireReservationsResult(
            expired=expired,
            message=f"{expired} reservation(s) expired",
        )

    # ==========================================
    # Queries
    # ==========================================

    async def list_reservations(
        self,
        status_filter: ReservationStatus | None = None,
        item_id: UUID | None = None,
        user_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ReservationDetail], int]:
        await self.reservation_repo.expire_stale()
        reservations, total = await self.reservation_repo.search(
            status=status_filter,
            item_id=item_id,
            user_id=user_id,
            page=page,
            page_size=page_size,
        )
        return [await self._to_detail(r) for r in reservations], total

    async def get_user_reservations(self, user_id: UUID) -> list[ReservationDetail]:
        await self.reservation_repo.expire_stale()
        reservations = await self.reservation_repo.get_by_user(user_id)
        return [await self._to_detail(r) for r in reservations]

    async def _get_reservation(self, reservation_id: UUID, for_update: bool = False) -> Reservation:
        if for_update:
            reservation = await self.reservation_repo.get_by_id_for_update(reservation_id)
        else:
            reservation = await self.reservation_repo.get_with_relations(reservation_id)
        if not reservation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Reservation not found",
            )
        return reservation

    async def _to_detail(self, reservation: Reservation) -> ReservationDetail:
        position = None
        if reservation.status == ReservationStatus.PENDING:
            position = await self.reservation_repo.get_queue_position(reservation)
        return ReservationDetail.from_reservation(reservation, position)
