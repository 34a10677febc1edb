"""
Display formatting for dates, money and statuses.

Status labels come from closed sets mirroring the backend enums; unknown
values are shown as-is in gray.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

LOAN_STATUSES = {
    "BORROWED": ("Borrowed", "blue"),
    "RETURNED": ("Returned", "green"),
    "OVERDUE": ("Overdue", "red"),
}

RESERVATION_STATUSES = {
    "PENDING": ("Waiting", "blue"),
    "FULFILLED": ("Fulfilled", "green"),
    "EXPIRED": ("Expired", "red"),
    "CANCELLED": ("Cancelled", "gray"),
}

FINE_STATUSES = {
    "PENDING": ("Pending", "orange"),
    "PAID": ("Paid", "green"),
    "WAIVED": ("Waived", "gray"),
}

ITEM_STATUSES = {
    "AVAILABLE": ("Available", "green"),
    "BORROWED": ("Borrowed", "blue"),
    "MAINTENANCE": ("Maintenance", "orange"),
    "LOST": ("Lost", "red"),
}

STATUS_MAPS = {
    "loan": LOAN_STATUSES,
    "reservation": RESERVATION_STATUSES,
    "fine": FINE_STATUSES,
    "item": ITEM_STATUSES,
}

ITEM_TYPE_ICONS = {
    "BOOK": "📕",
    "DVD": "💿",
    "MAGAZINE": "📰",
    "EQUIPMENT": "🔌",
}


def _parse(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_date(value: Optional[str | datetime]) -> str:
    """
    Formats a date for display.

    Returns:
        "19 Oct 2026", or "-" when empty
    """
    if not value:
        return "-"
    try:
        return _parse(value).strftime("%d %b %Y")
    except ValueError:
        return str(value)


def format_datetime(value: Optional[str | datetime]) -> str:
    if not value:
        return "-"
    try:
        return _parse(value).strftime("%d %b %Y %H:%M")
    except ValueError:
        return str(value)


def format_currency(value: Optional[float | str | Decimal]) -> str:
    """
    Formats a money amount.

    The API sends decimals as strings ("15.00").
    """
    if value is None:
        return "-"
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    return f"${amount:,.2f}"


def format_status(status: Optional[str], status_type: str = "loan") -> tuple[str, str]:
    """
    Label and color for a status.

    Args:
        status: Status value from the API
        status_type: 'loan', 'reservation', 'fine' or 'item'

    Returns:
        Tuple of (label, color)
    """
    if not status:
        return "-", "gray"

    status = status.upper()
    status_map = STATUS_MAPS.get(status_type, {})
    return status_map.get(status, (status, "gray"))


def status_badge(status: Optional[str], status_type: str = "loan") -> str:
    """Markdown colored badge, e.g. ':green[Paid]'."""
    label, color = format_status(status, status_type)
    return f":{color}[{label}]"


def loan_status(loan: dict) -> str:
    """BORROWED loans past due are shown as OVERDUE."""
    if loan.get("status") == "BORROWED" and loan.get("is_overdue"):
        return "OVERDUE"
    return loan.get("status", "")


def format_bool(value: Any) -> str:
    if value is True:
        return "Yes"
    elif value is False:
        return "No"
    return "-"


def calculate_days_until(date_str: Optional[str]) -> Optional[int]:
    """
    Days from now until a date (negative when past).
    """
    if not date_str:
        return None
    try:
        dt = _parse(date_str)
    except ValueError:
        return None
    now = datetime.now(dt.tzinfo) if dt.tzinfo else datetime.utcnow()
    return (dt - now).days


def format_days_remaining(days: Optional[int]) -> str:
    if days is None:
        return "-"
    if days < 0:
        return f"{abs(days)} day(s) overdue"
    elif days == 0:
        return "Due today"
    elif days == 1:
        return "Due tomorrow"
    else:
        return f"{days} days left"
