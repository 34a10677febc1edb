"""
Loan data access.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.loan import Loan
from lms.models.enums import LoanStatus
from lms.repositories.base import BaseRepository


class LoanRepository(BaseRepository[Loan]):
    """CRUD operations for Loan."""

    def __init__(self, db: AsyncSession):
        super().__init__(Loan, db)

    async def get_with_relations(self, loan_id: UUID) -> Loan | None:
        """Loan with user and item freshly loaded."""
        result = await self.db.execute(
            select(Loan)
            .where(Loan.id == loan_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def count_active_by_user(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Loan.id))
            .where(
                Loan.user_id == user_id,
                Loan.status == LoanStatus.BORROWED,
            )
        )
        return result.scalar_one()

    async def get_active_by_user_and_item(
        self,
        user_id: UUID,
        item_id: UUID,
    ) -> Loan | None:
        result = await self.db.execute(
            select(Loan)
            .where(
                Loan.user_id == user_id,
                Loan.item_id == item_id,
                Loan.status == LoanStatus.BORROWED,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: UUID) -> list[Loan]:
        """Every loan of a user, open ones first."""
        result = await self.db.execute(
            select(Loan)
            .where(Loan.user_id == user_id)
            .order_by(Loan.status, Loan.due_date.desc())
        )
        return list(result.scalars().all())

    async def search(
        self,
        user_id: UUID | None = None,
        item_id: UUID | None = None,
        status: str | None = None,  # "active", "returned", "overdue"
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Loan], int]:
        """
        Filtered, paginated loan listing.

        Args:
            user_id: Borrower
            item_id: Item
            status: "active", "returned" or "overdue" (open and past due)
            page: Page number
            page_size: Page size

        Returns:
            Tuple (loans, total)
        """
        now = datetime.utcnow()
        query = select(Loan)

        if user_id:
            query = query.where(Loan.user_id == user_id)
        if item_id:
            query = query.where(Loan.item_id == item_id)

        if status == "active":
            query = query.where(Loan.status == LoanStatus.BORROWED)
        elif status == "returned":
            query = query.where(Loan.status == LoanStatus.RETURNED)
        elif status == "overdue":
            query = query.where(
                Loan.status == LoanStatus.BORROWED,
                Loan.due_date < now,
            )

        return await self.paginate(query.order_by(Loan.loan_date.desc()), page, page_size)

    async def get_overdue_loans(
        self,
        now: datetime | None = None,
        for_update: bool = False,
    ) -> list[Loan]:
        """
        Open loans whose due date has passed, oldest first.

        With for_update the rows stay locked until the transaction ends,
        so concurrent fine runs and returns on the same loans serialize.
        """
        now = now or datetime.utcnow()
        query = (
            select(Loan)
            .where(
                Loan.status == LoanStatus.BORROWED,
                Loan.due_date < now,
            )
            .order_by(Loan.due_date)
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_due_between(self, start: datetime, end: datetime) -> list[Loan]:
        """Open loans due inside [start, end)."""
        result = await self.db.execute(
            select(Loan)
            .where(
                Loan.status == LoanStatus.BORROWED,
                Loan.due_date >= start,
                Loan.due_date < end,
            )
            .order_by(Loan.due_date)
        )
        return list(result.scalars().all())

    async def count_open(self) -> int:
        result = await self.db.execute(
            select(func.count(Loan.id)).where(Loan.status == LoanStatus.BORROWED)
        )
        return result.scalar_one()

    async def count_overdue(self) -> int:
        result = await self.db.execute(
            select(func.count(Loan.id)).where(
                Loan.status == LoanStatus.BORROWED,
                Loan.due_date < datetime.utcnow(),
            )
        )
        return result.scalar_one()
