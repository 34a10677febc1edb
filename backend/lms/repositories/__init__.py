"""
Repositories: data access.
"""

from lms.repositories.base import BaseRepository
from lms.repositories.user import UserRepository
from lms.repositories.item import CategoryRepository, LibraryItemRepository
from lms.repositories.loan import LoanRepository
from lms.repositories.reservation import ReservationRepository
from lms.repositories.fine import FineRepository
from lms.repositories.activity import ActivityRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "CategoryRepository",
    "LibraryItemRepository",
    "LoanRepository",
    "ReservationRepository",
    "FineRepository",
    "ActivityRepository",
]
