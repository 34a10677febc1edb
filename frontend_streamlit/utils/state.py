"""
Session state helpers.

Authentication state and the current user live in Streamlit's
session_state, one per browser session.
"""

import streamlit as st

STAFF_ROLES = ("LIBRARIAN", "ADMIN")
PATRON_ROLES = ("STUDENT", "TEACHER")

SESSION_KEYS = ("token", "refresh_token", "user_id", "email", "name", "role")


def init_session_state() -> None:
    """
    Initializes session state with default values.

    Called at the top of every page.
    """
    defaults = {key: None for key in SESSION_KEYS}
    defaults["base_url"] = "http://localhost:8000"
    defaults["pending_email"] = None
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def clear_session() -> None:
    """Clears every authentication key."""
    for key in SESSION_KEYS:
        st.session_state[key] = None


def set_user_session(token: dict, user_data: dict) -> None:
    """
    Stores the session after login.

    Args:
        token: Token pair from /auth/login
        user_data: User data from the login response
    """
    st.session_state.token = token.get("access_token")
    st.session_state.refresh_token = token.get("refresh_token")
    update_user(user_data)


def update_user(user_data: dict) -> None:
    st.session_state.user_id = user_data.get("id")
    st.session_state.email = user_data.get("email")
    st.session_state.name = user_data.get("name")
    st.session_state.role = user_data.get("role")


def get_token() -> str | None:
    return st.session_state.get("token")


def get_user_id() -> str | None:
    return st.session_state.get("user_id")


def get_user_role() -> str | None:
    return st.session_state.get("role")


def get_user_name() -> str | None:
    return st.session_state.get("name")


def is_authenticated() -> bool:
    return bool(st.session_state.get("token"))


def is_admin() -> bool:
    return st.session_state.get("role") == "ADMIN"


def is_staff() -> bool:
    """LIBRARIAN or ADMIN."""
    return st.session_state.get("role") in STAFF_ROLES
