"""
Dashboard counters across the catalog, circulation and fines.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.enums import ItemStatus
from lms.repositories.fine import FineRepository
from lms.repositories.item import LibraryItemRepository
from lms.repositories.loan import LoanRepository
from lms.repositories.reservation import ReservationRepository
from lms.repositories.user import UserRepository
from lms.schemas.system import LibraryStats


class SystemService:
    """Read-only aggregates for the staff dashboards."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.item_repo = LibraryItemRepository(db)
        self.loan_repo = LoanRepository(db)
        self.reservation_repo = ReservationRepository(db)
        self.fine_repo = FineRepository(db)
        self.user_repo = UserRepository(db)

    async def get_stats(self) -> LibraryStats:
        by_status = await self.item_repo.count_by_status()
        pending_fines, pending_amount = await self.fine_repo.pending_summary()

        return LibraryStats(
            items_total=sum(by_status.values()),
            items_by_status={s.value: by_status.get(s.value, 0) for s in ItemStatus},
            open_loans=await self.loan_repo.count_open(),
            overdue_loans=await self.loan_repo.count_overdue(),
            pending_reservations=await self.reservation_repo.count_pending(),
            pending_fines=pending_fines,
            pending_fines_amount=pending_amount,
            users_total=await self.user_repo.count(),
        )
