"""
Catalog service: library items and categories.
"""

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.models.item import Category, LibraryItem
from lms.models.user import User
from lms.models.enums import ActivityType, ItemStatus, ItemType
from lms.repositories.item import CategoryRepository, LibraryItemRepository
from lms.schemas.item import CategoryCreate, ItemCreate, ItemStats, ItemUpdate
from lms.services.activity import ActivityService

logger = logging.getLogger(__name__)

# Statuses staff may set by hand; BORROWED belongs to the loan flow
MANUAL_STATUSES = (ItemStatus.AVAILABLE, ItemStatus.MAINTENANCE, ItemStatus.LOST)


class ItemService:
    """Catalog operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = LibraryItemRepository(db)
        self.category_repo = CategoryRepository(db)
        self.activity = ActivityService(db)

    # ==========================================
    # Items
    # ==========================================

    async def get_by_id(self, item_id: UUID) -> LibraryItem:
        """
        Raises:
            HTTPException 404: Library item not found
        """
        item = await self.repo.get_by_id(item_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Library item not found",
            )
        return item

    async def list_paginated(
        self,
        search: str | None = None,
        item_type: ItemType | None = None,
        status_filter: ItemStatus | None = None,
        category_id: UUID | None = None,
        available: bool | None = None,
        include_archived: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[LibraryItem], int]:
        return await self.repo.search(
            search=search,
            item_type=item_type,
            status=status_filter,
            category_id=category_id,
            available=available,
            include_archived=include_archived,
            page=page,
            page_size=page_size,
        )

    async def create(self, data: ItemCreate, created_by: User) -> LibraryItem:
        """
        Adds an item to the catalog.

        Raises:
            HTTPException 400: Unknown category id
            HTTPException 409: Label code already used
        """
        if data.unique_item_id and await self.repo.get_by_code(data.unique_item_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An item with this unique id already exists",
            )

        categories = await self._load_categories(data.category_ids)

        item = LibraryItem(
            title=data.title,
            type=data.type,
            description=data.description,
            details=data.metadata,
            status=ItemStatus.AVAILABLE,
        )
        if data.unique_item_id:
            item.unique_item_id = data.unique_item_id
        item.categories = categories

        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)

        logger.info(f"Item added: {item.unique_item_id} '{item.title}'")
        await self.activity.log(
            created_by.id,
            ActivityType.ITEM_ADDED,
            f"{item.unique_item_id} {item.title}",
        )
        return item

    async def update(self, item_id: UUID, data: ItemUpdate) -> LibraryItem:
        """
        Partial update.

        Raises:
            HTTPException 400: Setting BORROWED by hand, or changing the
                status of a borrowed item
            HTTPException 404: Item not found
        """
        item = await self.get_by_id(item_id)

        if data.status is not None and data.status != item.status:
            if data.status not in MANUAL_STATUSES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="BORROWED is set by the loan flow",
                )
            if item.status == ItemStatus.BORROWED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot change the status of a borrowed item",
                )
            item.status = data.status

        if data.title is not None:
            item.title = data.title
        if data.type is not None:
            item.type = data.type
        if data.description is not None:
            item.description = data.description
        if data.metadata is not None:
            item.details = {**(item.details or {}), **data.metadata}
        if data.category_ids is not None:
            item.categories = await self._load_categories(data.category_ids)

        await self.db.commit()
        await self.db.refresh(item)
        return item

    async def archive(self, item_id: UUID) -> LibraryItem:
        """
        Soft-deletes an item.

        Raises:
            HTTPException 400: Item currently borrowed
            HTTPException 404: Item not found
        """
        item = await self.get_by_id(item_id)
        if item.status == ItemStatus.BORROWED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot archive a borrowed item",
            )

        item.is_archived = True
        await self.db.commit()
        await self.db.refresh(item)
        logger.info(f"Item archived: {item.unique_item_id}")
        return item

    async def unarchive(self, item_id: UUID) -> LibraryItem:
        item = await self.get_by_id(item_id)
        item.is_archived = False
        await self.db.commit()
        await self.db.refresh(item)
        return item

    async def get_stats(self) -> ItemStats:
        by_status = await self.repo.count_by_status()
        by_type = await self.repo.count_by_type()
        return ItemStats(
            total=sum(by_status.values()),
            archived=await self.repo.count_archived(),
            by_status={s.value: by_status.get(s.value, 0) for s in ItemStatus},
            by_type={t.value: by_type.get(t.value, 0) for t in ItemType},
        )

    async def _load_categories(self, category_ids: list[UUID]) -> list[Category]:
        categories = await self.category_repo.get_many(category_ids)
        if len(categories) != len(set(category_ids)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="One or more categories do not exist",
            )
        return categories

    # ==========================================
    # Categories
    # ==========================================

    async def list_categories(self) -> list[Category]:
        return await self.category_repo.list_all()

    async def create_category(self, data: CategoryCreate) -> Category:
        """
        Raises:
            HTTPException 409: Name already used
        """
        if await self.category_repo.get_by_name(data.name):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Category already exists",
            )
        return await self.category_repo.create(
            name=data.name,
            description=data.description,
        )
