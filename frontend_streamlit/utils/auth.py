"""
Authentication helpers for the Streamlit frontend.

Login, registration, email verification, password reset and page guards.
"""

import streamlit as st

from .api_client import APIError, get_api_client
from .state import clear_session, is_admin, is_authenticated, is_staff, set_user_session


def login_user(email: str, password: str) -> tuple[bool, str]:
    """
    Authenticates with email and password.

    Returns:
        Tuple of (success, message)
    """
    if not email or not password:
        return False, "Email and password are required"

    try:
        api = get_api_client()
        response = api.post(
            "auth/login",
            json={"email": email, "password": password},
            include_auth=False,
        )
    except APIError as e:
        if e.status_code == 403 and "not verified" in e.message:
            st.session_state.pending_email = email
        return False, e.message

    token = response.get("token") or {}
    if not token.get("access_token"):
        return False, "Invalid response from the server"

    set_user_session(token, response.get("user", {}))
    return True, "Logged in"


def register_user(name: str, email: str, password: str, role: str) -> tuple[bool, str]:
    """
    Creates an account; a verification code is emailed.

    Returns:
        Tuple of (success, message)
    """
    if not name or len(name) < 2:
        return False, "Name must have at least 2 characters"
    if not email or "@" not in email:
        return False, "Invalid email"
    if not password or len(password) < 8:
        return False, "Password must have at least 8 characters"

    try:
        api = get_api_client()
        response = api.post(
            "auth/register",
            json={"name": name, "email": email, "password": password, "role": role},
            include_auth=False,
        )
    except APIError as e:
        return False, e.message

    st.session_state.pending_email = email
    return True, response.get("message", "Account created. Check your email for the code.")


def verify_email(email: str, otp: str) -> tuple[bool, str]:
    try:
        response = get_api_client().post(
            "auth/verify-email",
            json={"email": email, "otp": otp},
            include_auth=False,
        )
    except APIError as e:
        return False, e.message

    st.session_state.pending_email = None
    return True, response.get("message", "Email verified")


def resend_otp(email: str) -> tuple[bool, str]:
    try:
        response = get_api_client().post("auth/resend-otp", json={"email": email}, include_auth=False)
    except APIError as e:
        return False, e.message
    return True, response.get("message", "A new code was sent")


def request_password_reset(email: str) -> tuple[bool, str]:
    try:
        response = get_api_client().post("auth/forgot-password", json={"email": email}, include_auth=False)
    except APIError as e:
        return False, e.message
    return True, response.get("message", "If the email exists, a code was sent")


def reset_password(email: str, otp: str, new_password: str) -> tuple[bool, str]:
    try:
        response = get_api_client().post(
            "auth/reset-password",
            json={"email": email, "otp": otp, "new_password": new_password},
            include_auth=False,
        )
    except APIError as e:
        return False, e.message
    return True, response.get("message", "Password changed")


def logout_user() -> None:
    """Revokes the refresh token on the server and clears the session."""
    refresh_token = st.session_state.get("refresh_token")
    try:
        get_api_client().post("auth/logout", json={"refresh_token": refresh_token})
    except APIError as e:
        st.toast(f"Server logout failed: {e.message}")
    clear_session()


def require_auth() -> bool:
    """
    Guard for pages that need a logged-in user.

    Shows a warning and returns False when nobody is logged in.
    """
    if not is_authenticated():
        st.warning("You need to log in to access this page.")
        st.page_link("pages/1_Login.py", label="Go to login", icon="🔐")
        return False
    return True


def require_staff() -> bool:
    """Guard for librarian pages (ADMIN passes too)."""
    if not require_auth():
        return False

    if not is_staff():
        st.error("Restricted area. This page is for library staff.")
        return False

    return True


def require_admin() -> bool:
    if not require_auth():
        return False

    if not is_admin():
        st.error("Restricted area. This page is for administrators.")
        return False

    return True
