"""
Catalog models: LibraryItem, Category and the item_categories join table.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.session import Base
from lms.models.base import JSONType, UUIDMixin, TimestampMixin
from lms.models.enums import ItemStatus, ItemType


# ItemCategory join table
item_categories = Table(
    "item_categories",
    Base.metadata,
    Column(
        "item_id",
        Uuid(as_uuid=True),
        ForeignKey("library_items.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


def generate_item_code() -> str:
    """Human-facing unique identifier printed on the item label."""
    return f"LIB-{uuid.uuid4().hex[:10].upper()}"


class Category(Base, UUIDMixin, TimestampMixin):
    """Item category (many-to-many with items)."""
    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class LibraryItem(Base, UUIDMixin, TimestampMixin):
    """
    A physical item that can be borrowed.

    Archived items stay in the table for loan history but cannot be
    borrowed or reserved.

    Attributes:
        unique_item_id: Label code, unique
        title: Item title
        type: BOOK, DVD, MAGAZINE or EQUIPMENT
        status: AVAILABLE, BORROWED, MAINTENANCE or LOST
        description: Free text
        is_archived: Soft-delete flag
        details: JSON stored in the "metadata" column (author, isbn, publisher)
        categories: Linked categories
    """
    __tablename__ = "library_items"

    unique_item_id: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        default=generate_item_code,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    type: Mapped[ItemType] = mapped_column(
        SQLEnum(ItemType, name="item_type"),
        nullable=False,
        default=ItemType.BOOK,
    )
    status: Mapped[ItemStatus] = mapped_column(
        SQLEnum(ItemStatus, name="item_status"),
        nullable=False,
        default=ItemStatus.AVAILABLE,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    details: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )

    categories: Mapped[List[Category]] = relationship(
        Category,
        secondary=item_categories,
        lazy="selectin",
        order_by=Category.name,
    )

    __table_args__ = (
        Index("ix_library_items_status", "status"),
        Index("ix_library_items_type", "type"),
    )

    def __repr__(self) -> str:
        return f"<LibraryItem {self.unique_item_id} - {self.status.value}>"

    @property
    def is_available(self) -> bool:
        """True when the item can be lent right now."""
        return self.status == ItemStatus.AVAILABLE and not self.is_archived
