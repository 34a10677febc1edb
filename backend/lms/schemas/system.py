"""
Dashboard statistics schema.
"""

from lms.schemas.base import BaseSchema, Money


class LibraryStats(BaseSchema):
    """Circulation counters shown on the staff dashboards."""
    items_total: int
    items_by_status: dict[str, int]
    open_loans: int
    overdue_loans: int
    pending_reservations: int
    pending_fines: int
    pending_fines_amount: Money
    users_total: int
