"""
Reservation data access.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.reservation import Reservation
from lms.models.enums import ReservationStatus
from lms.repositories.base import BaseRepository


class ReservationRepository(BaseRepository[Reservation]):
    """CRUD operations for Reservation."""

    def __init__(self, db: AsyncSession):
        super().__init__(Reservation, db)

    async def get_with_relations(self, reservation_id: UUID) -> Reservation | None:
        result = await self.db.execute(
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_pending_by_user_and_item(
        self,
        user_id: UUID,
        item_id: UUID,
    ) -> Reservation | None:
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.user_id == user_id,
                Reservation.item_id == item_id,
                Reservation.status == ReservationStatus.PENDING,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_queue(self, item_id: UUID) -> list[Reservation]:
        """PENDING reservations of an item in FIFO order."""
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.item_id == item_id,
                Reservation.status == ReservationStatus.PENDING,
            )
            .order_by(Reservation.created_at, Reservation.id)
        )
        return list(result.scalars().all())

    async def get_first_pending(self, item_id: UUID) -> Reservation | None:
        """Head of the item queue (oldest non-expired PENDING reservation)."""
        result = await self.db.execute(
            select(Reservation)
            .where(
                Reservation.item_id == item_id,
                Reservation.status == ReservationStatus.PENDING,
                Reservation.expires_at > datetime.utcnow(),
            )
            .order_by(Reservation.created_at, Reservation.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def has_pending_for_item(self, item_id: UUID) -> bool:
        return await self.get_first_pending(item_id) is not None

    async def get_queue_position(self, reservation: Reservation) -> int:
        """1-based position of a PENDING reservation in its item queue."""
        result = await self.db.execute(
            select(func.count(Reservation.id))
            .where(
                Reservation.item_id == reservation.item_id,
                Reservation.status == ReservationStatus.PENDING,
                Reservation.created_at < reservation.created_at,
            )
        )
        return result.scalar_one() + 1

    async def get_by_user(self, user_id: UUID) -> list[Reservation]:
        result = await self.db.execute(
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.created_at.desc())
        )
        return list(result.scalars().all())

    async def search(
        self,
        status: ReservationStatus | None = None,
        item_id: UUID | None = None,
        user_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Reservation], int]:
        """Filtered, paginated listing, oldest first so the queue reads top-down."""
        query = select(Reservation)
        if status is not None:
            query = query.where(Reservation.status == status)
        if item_id is not None:
            query = query.where(Reservation.item_id == item_id)
        if user_id is not None:
            query = query.where(Reservation.user_id == user_id)

        return await self.paginate(query.order_by(Reservation.created_at), page, page_size)

    async def expire_stale(self, now: datetime | None = None) -> int:
        """
        Marks every PENDING reservation past expires_at as EXPIRED.

        Commits and returns the number of rows changed.
        """
        now = now or datetime.utcnow()
        result = await self.db.execute(
            update(Reservation)
            .where(
                Reservation.status == ReservationStatus.PENDING,
                Reservation.expires_at <= now,
            )
            .values(status=ReservationStatus.EXPIRED, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return result.rowcount or 0

    async def count_pending(self) -> int:
        result = await self.db.execute(
            select(func.count(Reservation.id)).where(
                Reservation.status == ReservationStatus.PENDING
            )
        )
        return result.scalar_one()
