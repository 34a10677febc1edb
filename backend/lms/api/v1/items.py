"""
Catalog endpoints: library items and categories.

Contracts:
    - GET /items: Paginated search
    - POST /items: Add an item (staff)
    - GET /items/stats: Catalog counters (staff)
    - GET /items/{id}: Item detail
    - PATCH /items/{id}: Partial update (staff)
    - DELETE /items/{id}: Archive (staff)
    - PATCH /items/{id}/unarchive: Restore (staff)
    - GET /categories: List categories (public)
    - POST /categories: Add a category (staff)

Status codes:
    - 200: Success
    - 201: Created
    - 400: Unknown category, borrowed item archived, manual BORROWED
    - 401: Not authenticated
    - 403: Not allowed
    - 404: Item not found
    - 409: Duplicate label code or category name
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from lms.core.deps import CurrentUser, DbSession, StaffUser, is_staff
from lms.models.enums import ItemStatus, ItemType
from lms.schemas.base import PaginatedResponse
from lms.schemas.item import (
    CategoryCreate,
    CategoryRead,
    ItemCreate,
    ItemRead,
    ItemStats,
    ItemUpdate,
)
from lms.services.item import ItemService

router = APIRouter(prefix="/items", tags=["Catalog"])
categories_router = APIRouter(prefix="/categories", tags=["Catalog"])


# ==========================================
# Items
# ==========================================

@router.get(
    "",
    response_model=PaginatedResponse[ItemRead],
    summary="Search the catalog",
    description="Search matches title, label code and metadata (author, isbn...).",
)
async def list_items(
    db: DbSession,
    current_user: CurrentUser,
    search: str | None = Query(None, description="Free text"),
    item_type: ItemType | None = Query(None, alias="type"),
    status_filter: ItemStatus | None = Query(None, alias="status"),
    category_id: UUID | None = Query(None),
    available: bool | None = Query(None, description="Only AVAILABLE items"),
    include_archived: bool = Query(False, description="Staff only"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ItemRead]:
    service = ItemService(db)
    items, total = await service.list_paginated(
        search=search,
        item_type=item_type,
        status_filter=status_filter,
        category_id=category_id,
        available=available,
        include_archived=include_archived and is_staff(current_user),
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[ItemRead.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    response_model=ItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add an item",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def create_item(
    data: ItemCreate,
    db: DbSession,
    staff: StaffUser,
) -> ItemRead:
    service = ItemService(db)
    item = await service.create(data, staff)
    return ItemRead.model_validate(item)


@router.get(
    "/stats",
    response_model=ItemStats,
    summary="Catalog counters",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def item_stats(
    db: DbSession,
    staff: StaffUser,
) -> ItemStats:
    service = ItemService(db)
    return await service.get_stats()


@router.get(
    "/{item_id}",
    response_model=ItemRead,
    summary="Item detail",
)
async def get_item(
    item_id: UUID,
    db: DbSession,
    current_user: CurrentUser,
) -> ItemRead:
    service = ItemService(db)
    item = await service.get_by_id(item_id)
    if item.is_archived and not is_staff(current_user):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Library item not found",
        )
    return ItemRead.model_validate(item)


@router.patch(
    "/{item_id}",
    response_model=ItemRead,
    summary="Update an item",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def update_item(
    item_id: UUID,
    data: ItemUpdate,
    db: DbSession,
    staff: StaffUser,
) -> ItemRead:
    service = ItemService(db)
    item = await service.update(item_id, data)
    return ItemRead.model_validate(item)


@router.delete(
    "/{item_id}",
    response_model=ItemRead,
    summary="Archive an item",
    description="Soft delete; borrowed items cannot be archived. **Requires LIBRARIAN or ADMIN.**",
)
async def archive_item(
    item_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> ItemRead:
    service = ItemService(db)
    item = await service.archive(item_id)
    return ItemRead.model_validate(item)


@router.patch(
    "/{item_id}/unarchive",
    response_model=ItemRead,
    summary="Restore an archived item",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def unarchive_item(
    item_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> ItemRead:
    service = ItemService(db)
    item = await service.unarchive(item_id)
    return ItemRead.model_validate(item)


# ==========================================
# Categories
# ==========================================

@categories_router.get(
    "",
    response_model=list[CategoryRead],
    summary="List categories",
)
async def list_categories(db: DbSession) -> list[CategoryRead]:
    service = ItemService(db)
    return [CategoryRead.model_validate(c) for c in await service.list_categories()]


@categories_router.post(
    "",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a category",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def create_category(
    data: CategoryCreate,
    db: DbSession,
    staff: StaffUser,
) -> CategoryRead:
    service = ItemService(db)
    category = await service.create_category(data)
    return CategoryRead.model_validate(category)
