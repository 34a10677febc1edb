"""
SQLAlchemy models.

Every model is imported here so Alembic sees the full metadata.
"""

from lms.models.enums import (
    ActivityType,
    FineStatus,
    ItemStatus,
    ItemType,
    LoanStatus,
    ReservationStatus,
    UserRole,
)
from lms.models.user import User
from lms.models.item import Category, LibraryItem, item_categories
from lms.models.loan import Loan
from lms.models.reservation import Reservation
from lms.models.fine import Fine
from lms.models.activity import Activity

__all__ = [
    "ActivityType",
    "FineStatus",
    "ItemStatus",
    "ItemType",
    "LoanStatus",
    "ReservationStatus",
    "UserRole",
    "User",
    "Category",
    "LibraryItem",
    "item_categories",
    "Loan",
    "Reservation",
    "Fine",
    "Activity",
]
