"""
Utility modules for the Streamlit frontend.
"""

from .api_client import APIClient, APIError, get_api_client
from .auth import login_user, register_user, require_admin, require_auth, require_staff
from .state import clear_session, get_token, init_session_state, is_admin, is_authenticated, is_staff
from .formatters import format_currency, format_date, format_datetime, format_status, status_badge

__all__ = [
    "APIClient",
    "APIError",
    "get_api_client",
    "login_user",
    "register_user",
    "require_auth",
    "require_staff",
    "require_admin",
    "init_session_state",
    "clear_session",
    "get_token",
    "is_authenticated",
    "is_admin",
    "is_staff",
    "format_date",
    "format_datetime",
    "format_currency",
    "format_status",
    "status_badge",
]
