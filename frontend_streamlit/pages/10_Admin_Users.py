"""
User administration.

Admin-only page: accounts, roles, activation, librarian approvals
and the activity log.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_admin
from utils.formatters import format_bool, format_datetime
from utils.state import get_user_id, init_session_state

init_session_state()

st.set_page_config(page_title="Users - Library", page_icon="👥", layout="wide")

st.title("👥 User Administration")

if not require_admin():
    st.stop()

api = get_api_client()

ROLES = ["STUDENT", "TEACHER", "LIBRARIAN", "ADMIN"]
ACTIONS = [
    "LOAN_CREATED", "LOAN_RETURNED", "LOAN_RENEWED",
    "FINE_APPLIED", "FINE_PAID", "FINE_WAIVED", "FINE_REMINDER_SENT",
    "RESERVATION_PLACED", "RESERVATION_APPROVED", "RESERVATION_CANCELLED",
    "USER_ACTIVATED", "USER_DEACTIVATED", "ROLE_CHANGED", "PROFILE_UPDATED", "ITEM_ADDED",
]


def load_users(role: str, search: str) -> list:
    params = {"page_size": 100}
    if role:
        params["role"] = role
    if search:
        params["search"] = search
    try:
        return api.get("users", params=params).get("items", [])
    except APIError as e:
        st.error(f"Could not load users: {e.message}")
        return []


def set_active(user_id: str, active: bool) -> tuple[bool, str]:
    action = "activate" if active else "deactivate"
    try:
        api.patch(f"users/{user_id}/{action}")
    except APIError as e:
        return False, e.message
    return True, f"User {action}d"


try:
    statistics = api.get("users/statistics")
except APIError as e:
    st.error(e.message)
    statistics = {}

if statistics:
    by_role = statistics.get("by_role", {})
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Users", statistics.get("total", 0))
    col2.metric("Active", statistics.get("active", 0))
    col3.metric("Patrons", by_role.get("STUDENT", 0) + by_role.get("TEACHER", 0))
    col4.metric("Staff", by_role.get("LIBRARIAN", 0) + by_role.get("ADMIN", 0))
    col5.metric("Pending librarians", statistics.get("pending_librarians", 0))

tab_users, tab_requests, tab_new, tab_activity = st.tabs(
    ["👤 Users", "📝 Librarian requests", "➕ New user", "📜 Activity"]
)

with tab_users:
    col_role, col_search = st.columns([1, 3])
    with col_role:
        role_filter = st.selectbox("Role", [""] + ROLES, format_func=lambda r: r.title() if r else "All")
    with col_search:
        search = st.text_input("Search", placeholder="Name or email")

    users = load_users(role_filter, search)
    if not users:
        st.info("No users found.")

    current_user_id = get_user_id()
    for user in users:
        user_id = user["id"]
        with st.container(border=True):
            col1, col2, col3, col4 = st.columns([2, 1, 1, 1])

            with col1:
                st.markdown(f"**{user.get('name')}**")
                st.caption(f"{user.get('email')} · joined {format_datetime(user.get('created_at'))}")

            with col2:
                st.caption(f"Verified: {format_bool(user.get('is_verified'))}")
                st.caption(f"Active: {format_bool(user.get('is_active'))}")

            with col3:
                new_role = st.selectbox(
                    "Role",
                    ROLES,
                    index=ROLES.index(user.get("role", "STUDENT")),
                    key=f"role_{user_id}",
                    label_visibility="collapsed",
                    disabled=user_id == current_user_id,
                )
                if new_role != user.get("role"):
                    try:
                        api.patch(f"users/{user_id}/role", json={"role": new_role})
                    except APIError as e:
                        st.error(e.message)
                    else:
                        st.rerun()

            with col4:
                if user_id != current_user_id:
                    if user.get("is_active"):
                        clicked = st.button("🚫 Deactivate", key=f"deactivate_{user_id}", use_container_width=True)
                    else:
                        clicked = st.button("✅ Activate", key=f"activate_{user_id}", use_container_width=True)
                    if clicked:
                        success, message = set_active(user_id, not user.get("is_active"))
                        if success:
                            st.rerun()
                        st.error(message)

with tab_requests:
    try:
        requests_ = api.get("users/librarian-requests")
    except APIError as e:
        st.error(e.message)
        requests_ = []

    if not requests_:
        st.info("No pending librarian requests.")
    for user in requests_:
        with st.container(border=True):
            col1, col2 = st.columns([3, 1])
            with col1:
                st.markdown(f"**{user.get('name')}** · {user.get('email')}")
                st.caption(f"Requested {format_datetime(user.get('created_at'))}")
            with col2:
                if st.button("✅ Approve", key=f"approve_{user['id']}", use_container_width=True):
                    success, message = set_active(user["id"], True)
                    if success:
                        st.rerun()
                    st.error(message)

with tab_new:
    st.caption("Accounts created here are verified and active straight away.")
    with st.form("new_user_form", clear_on_submit=True):
        name = st.text_input("Name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password", help="8+ characters, upper and lower case, a digit")
        role = st.selectbox("Role", ROLES)

        if st.form_submit_button("Create user", use_container_width=True):
            try:
                created = api.post(
                    "users",
                    json={"name": name, "email": email, "password": password, "role": role},
                )
            except APIError as e:
                st.error(e.message)
            else:
                st.success(f"Created {created.get('email')} as {created.get('role')}")

with tab_activity:
    action = st.selectbox(
        "Action", [""] + ACTIONS, format_func=lambda a: a.replace("_", " ").title() if a else "All"
    )
    params = {"page_size": 100}
    if action:
        params["action"] = action
    try:
        activities = api.get("activities", params=params).get("items", [])
    except APIError as e:
        st.error(e.message)
        activities = []

    if not activities:
        st.info("No activity recorded.")
    for activity in activities:
        st.markdown(
            f"`{format_datetime(activity.get('created_at'))}` "
            f"**{activity.get('action')}** "
            f"{activity.get('details') or ''} "
            f"<small>({activity.get('user_id')})</small>",
            unsafe_allow_html=True,
        )
