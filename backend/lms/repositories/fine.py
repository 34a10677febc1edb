"""
Fine data access.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.fine import Fine
from lms.models.enums import FineStatus
from lms.repositories.base import BaseRepository

# Statuses that block a new overdue fine for the same loan
BLOCKING_STATUSES = (FineStatus.PENDING, FineStatus.PAID)


class FineRepository(BaseRepository[Fine]):
    """CRUD operations for Fine."""

    def __init__(self, db: AsyncSession):
        super().__init__(Fine, db)

    async def get_with_relations(self, fine_id: UUID) -> Fine | None:
        result = await self.db.execute(
            select(Fine)
            .where(Fine.id == fine_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: UUID) -> list[Fine]:
        result = await self.db.execute(
            select(Fine)
            .where(Fine.user_id == user_id)
            .order_by(Fine.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_loan_ids_with_blocking_fine(self, loan_ids: list[UUID]) -> set[UUID]:
        """Loans among loan_ids that already carry a PENDING or PAID fine."""
        if not loan_ids:
            return set()
        result = await self.db.execute(
            select(Fine.loan_id)
            .where(
                Fine.loan_id.in_(loan_ids),
                Fine.status.in_(BLOCKING_STATUSES),
            )
            .distinct()
        )
        return set(result.scalars().all())

    async def search(
        self,
        status: FineStatus | None = None,
        user_id: UUID | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Fine], int]:
        """Filtered, paginated listing, newest first."""
        query = select(Fine)
        if status is not None:
            query = query.where(Fine.status == status)
        if user_id is not None:
            query = query.where(Fine.user_id == user_id)

        return await self.paginate(query.order_by(Fine.created_at.desc()), page, page_size)

    async def pending_summary(self) -> tuple[int, Decimal]:
        """Count and sum of PENDING fines."""
        result = await self.db.execute(
            select(func.count(Fine.id), func.coalesce(func.sum(Fine.amount), 0))
            .where(Fine.status == FineStatus.PENDING)
        )
        count, total = result.one()
        return count, Decimal(str(total)).quantize(Decimal("0.01"))
