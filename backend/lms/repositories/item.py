"""
Catalog data access: items and categories.
"""

from uuid import UUID

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.item import Category, LibraryItem
from lms.models.enums import ItemStatus, ItemType
from lms.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """CRUD operations for Category."""

    def __init__(self, db: AsyncSession):
        super().__init__(Category, db)

    async def get_by_name(self, name: str) -> Category | None:
        result = await self.db.execute(
            select(Category).where(func.lower(Category.name) == name.lower())
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: list[UUID]) -> list[Category]:
        if not ids:
            return []
        result = await self.db.execute(
            select(Category).where(Category.id.in_(ids))
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())


class LibraryItemRepository(BaseRepository[LibraryItem]):
    """CRUD operations for LibraryItem."""

    def __init__(self, db: AsyncSession):
        super().__init__(LibraryItem, db)

    async def get_by_code(self, unique_item_id: str) -> LibraryItem | None:
        result = await self.db.execute(
            select(LibraryItem).where(LibraryItem.unique_item_id == unique_item_id)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        search: str | None = None,
        item_type: ItemType | None = None,
        status: ItemStatus | None = None,
        category_id: UUID | None = None,
        available: bool | None = None,
        include_archived: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[LibraryItem], int]:
        """
        Filtered, paginated catalog listing.

        Args:
            search: Partial match on title, label code or metadata text
            item_type: BOOK, DVD, MAGAZINE, EQUIPMENT
            status: Circulation status
            category_id: Linked category
            available: Shortcut for status AVAILABLE (True) or not (False)
            include_archived: Include archived items
            page: Page number
            page_size: Page size

        Returns:
            Tuple (items, total)
        """
        query = select(LibraryItem)

        if not include_archived:
            query = query.where(LibraryItem.is_archived.is_(False))
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    LibraryItem.title.ilike(pattern),
                    LibraryItem.unique_item_id.ilike(pattern),
                    # author, isbn, publisher live in the JSON column
                    cast(LibraryItem.details, String).ilike(pattern),
                )
            )
        if item_type is not None:
            query = query.where(LibraryItem.type == item_type)
        if status is not None:
            query = query.where(LibraryItem.status == status)
        if available is True:
            query = query.where(LibraryItem.status == ItemStatus.AVAILABLE)
        elif available is False:
            query = query.where(LibraryItem.status != ItemStatus.AVAILABLE)
        if category_id is not None:
            query = query.where(
                LibraryItem.categories.any(Category.id == category_id)
            )

        return await self.paginate(query.order_by(LibraryItem.title), page, page_size)

    async def count_by_status(self) -> dict[str, int]:
        """Non-archived items per status."""
        result = await self.db.execute(
            select(LibraryItem.status, func.count(LibraryItem.id))
            .where(LibraryItem.is_archived.is_(False))
            .group_by(LibraryItem.status)
        )
        return {status.value: count for status, count in result.all()}

    async def count_by_type(self) -> dict[str, int]:
        result = await self.db.execute(
            select(LibraryItem.type, func.count(LibraryItem.id))
            .where(LibraryItem.is_archived.is_(False))
            .group_by(LibraryItem.type)
        )
        return {item_type.value: count for item_type, count in result.all()}

    async def count_archived(self) -> int:
        result = await self.db.execute(
            select(func.count(LibraryItem.id)).where(LibraryItem.is_archived.is_(True))
        )
        return result.scalar_one()
