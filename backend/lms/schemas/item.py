"""
Catalog schemas: library items and categories.
"""

from typing import Any
from uuid import UUID

from pydantic import AliasChoices, Field

from lms.models.enums import ItemStatus, ItemType
from lms.schemas.base import BaseSchema, TimestampSchema


class CategoryCreate(BaseSchema):
    name: str = Field(..., min_length=2, max_length=100, examples=["Science Fiction"])
    description: str | None = None


class CategoryRead(TimestampSchema):
    id: UUID
    name: str
    description: str | None = None


class ItemCreate(BaseSchema):
    """
    New catalog item.

    metadata carries type-specific fields (author, isbn, publisher,
    director, issue number, serial number...).
    """
    title: str = Field(..., min_length=1, max_length=500, examples=["Dune"])
    type: ItemType = ItemType.BOOK
    description: str | None = None
    unique_item_id: str | None = Field(
        None,
        max_length=50,
        description="Label code; generated when omitted",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        examples=[{"author": "Frank Herbert", "isbn": "9780441013593"}],
    )
    category_ids: list[UUID] = Field(default_factory=list)


class ItemUpdate(BaseSchema):
    """Partial item update. Circulation status is managed by loans."""
    title: str | None = Field(None, min_length=1, max_length=500)
    type: ItemType | None = None
    description: str | None = None
    status: ItemStatus | None = Field(
        None,
        description="Only AVAILABLE, MAINTENANCE or LOST can be set by hand",
    )
    metadata: dict[str, Any] | None = None
    category_ids: list[UUID] | None = None


class ItemRead(TimestampSchema):
    id: UUID
    unique_item_id: str
    title: str
    type: ItemType
    status: ItemStatus
    description: str | None = None
    is_archived: bool
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("details", "metadata"),
    )
    categories: list[CategoryRead] = Field(default_factory=list)


class ItemStats(BaseSchema):
    """Catalog counters."""
    total: int
    archived: int
    by_status: dict[str, int]
    by_type: dict[str, int]
