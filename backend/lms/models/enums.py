"""
Enums used by the models.
"""

import enum


class UserRole(str, enum.Enum):
    """User roles. STUDENT and TEACHER are patrons."""
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    LIBRARIAN = "LIBRARIAN"
    ADMIN = "ADMIN"


PATRON_ROLES = (UserRole.STUDENT, UserRole.TEACHER)


class ItemType(str, enum.Enum):
    """Kind of catalog item."""
    BOOK = "BOOK"
    DVD = "DVD"
    MAGAZINE = "MAGAZINE"
    EQUIPMENT = "EQUIPMENT"


class ItemStatus(str, enum.Enum):
    """Circulation status of a catalog item."""
    AVAILABLE = "AVAILABLE"
    BORROWED = "BORROWED"
    MAINTENANCE = "MAINTENANCE"
    LOST = "LOST"


class LoanStatus(str, enum.Enum):
    """Loan status. Overdue is derived from due_date, never stored."""
    BORROWED = "BORROWED"
    RETURNED = "RETURNED"


class ReservationStatus(str, enum.Enum):
    """
    Reservation status.

    Flow:
        PENDING -> FULFILLED (approved, loan created)
        PENDING -> CANCELLED (owner or staff)
        PENDING -> EXPIRED (expires_at elapsed)
    """
    PENDING = "PENDING"
    FULFILLED = "FULFILLED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class FineStatus(str, enum.Enum):
    """
    Fine status.

    PAID and WAIVED are terminal.
    """
    PENDING = "PENDING"
    PAID = "PAID"
    WAIVED = "WAIVED"


class ActivityType(str, enum.Enum):
    """Audited events."""
    LOAN_CREATED = "LOAN_CREATED"
    LOAN_RETURNED = "LOAN_RETURNED"
    LOAN_RENEWED = "LOAN_RENEWED"
    FINE_APPLIED = "FINE_APPLIED"
    FINE_PAID = "FINE_PAID"
    FINE_WAIVED = "FINE_WAIVED"
    FINE_REMINDER_SENT = "FINE_REMINDER_SENT"
    RESERVATION_PLACED = "RESERVATION_PLACED"
    RESERVATION_APPROVED = "RESERVATION_APPROVED"
    RESERVATION_CANCELLED = "RESERVATION_CANCELLED"
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    ITEM_ADDED = "ITEM_ADDED"
