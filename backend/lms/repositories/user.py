"""
User data access.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.user import User
from lms.models.enums import UserRole
from lms.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """CRUD operations for User."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case insensitive)."""
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        user = await self.get_by_email(email)
        return user is not None

    async def search(
        self,
        role: UserRole | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[User], int]:
        """
        Filtered, paginated listing.

        Args:
            role: Exact role
            is_active: Soft flag
            search: Partial match on name or email
            page: Page number
            page_size: Page size

        Returns:
            Tuple (users, total)
        """
        query = select(User)

        if role is not None:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(User.name.ilike(pattern), User.email.ilike(pattern))
            )

        return await self.paginate(query.order_by(User.created_at.desc()), page, page_size)

    async def get_pending_librarians(self) -> list[User]:
        """
        Self-registered librarians no admin has activated yet.

        Librarians deactivated after approval are not requests.
        """
        result = await self.db.execute(
            select(User)
            .where(
                User.role == UserRole.LIBRARIAN,
                User.is_approved.is_(False),
            )
            .order_by(User.created_at)
        )
        return list(result.scalars().all())

    async def count_by_role(self) -> dict[str, int]:
        result = await self.db.execute(
            select(User.role, func.count(User.id)).group_by(User.role)
        )
        return {role.value: count for role, count in result.all()}

    async def count_where(self, *conditions) -> int:
        result = await self.db.execute(
            select(func.count(User.id)).where(*conditions)
        )
        return result.scalar_one()

    async def count_created_since(self, since: datetime) -> int:
        return await self.count_where(User.created_at >= since)
