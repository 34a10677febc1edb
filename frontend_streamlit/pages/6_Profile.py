"""
Profile page: account data, metadata, password and recent activity.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_auth
from utils.formatters import format_datetime
from utils.state import init_session_state, update_user

init_session_state()

st.set_page_config(page_title="Profile - Library", page_icon="👤", layout="centered")

st.title("👤 My Profile")

if not require_auth():
    st.stop()

api = get_api_client()

try:
    me = api.get("auth/me")
except APIError as e:
    st.error(f"Could not load your profile: {e.message}")
    st.stop()

st.markdown(f"**{me.get('name')}** · {me.get('email')}")
st.caption(f"Role: {me.get('role')} · member since {format_datetime(me.get('created_at'))}")

metadata = me.get("metadata") or {}

tab_profile, tab_password, tab_activity = st.tabs(["Profile", "Password", "Activity"])

with tab_profile:
    with st.form("profile_form"):
        name = st.text_input("Name", value=me.get("name", ""))
        email = st.text_input("Email", value=me.get("email", ""))
        phone = st.text_input("Phone", value=metadata.get("phone", ""))
        address = st.text_area("Address", value=metadata.get("address", ""))

        if me.get("role") == "STUDENT":
            extra_key, extra_label = "student_id", "Student ID"
        elif me.get("role") == "TEACHER":
            extra_key, extra_label = "department", "Department"
        else:
            extra_key, extra_label = "desk", "Desk"
        extra = st.text_input(extra_label, value=metadata.get(extra_key, ""))

        if st.form_submit_button("Save", use_container_width=True):
            payload = {
                "name": name,
                "metadata": {"phone": phone, "address": address, extra_key: extra},
            }
            if email != me.get("email"):
                payload["email"] = email
            try:
                updated = api.patch("users/me", json=payload)
            except APIError as e:
                st.error(e.message)
            else:
                update_user(updated)
                st.success("Profile updated")
                st.rerun()

with tab_password:
    with st.form("password_form"):
        current_password = st.text_input("Current password", type="password")
        new_password = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")

        if st.form_submit_button("Change password", use_container_width=True):
            if new_password != confirm:
                st.error("Passwords do not match")
            else:
                try:
                    api.patch(
                        "users/me",
                        json={"current_password": current_password, "new_password": new_password},
                    )
                except APIError as e:
                    st.error(e.message)
                else:
                    st.success("Password changed. Other sessions were signed out.")

with tab_activity:
    try:
        activities = api.get("activities/my", params={"page_size": 30}).get("items", [])
    except APIError as e:
        st.error(e.message)
        activities = []

    if not activities:
        st.info("No activity yet.")
    for activity in activities:
        st.markdown(
            f"`{format_datetime(activity.get('created_at'))}` "
            f"**{activity.get('action', '').replace('_', ' ').title()}** "
            f"{activity.get('details') or ''}"
        )
