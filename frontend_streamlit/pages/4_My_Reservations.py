"""
My Reservations page.

Reservation queue positions, expiry dates and cancellation.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_auth
from utils.formatters import format_date, format_datetime, status_badge
from utils.state import init_session_state

init_session_state()

st.set_page_config(page_title="My Reservations - Library", page_icon="📋", layout="wide")

st.title("📋 My Reservations")

if not require_auth():
    st.stop()

api = get_api_client()


def load_my_reservations() -> list:
    try:
        return api.get("reservations/my")
    except APIError as e:
        st.error(f"Could not load reservations: {e.message}")
        return []


def cancel_reservation(reservation_id: str) -> tuple[bool, str]:
    try:
        api.delete(f"reservations/{reservation_id}")
    except APIError as e:
        return False, e.message
    return True, "Reservation cancelled"


if st.button("🔄 Refresh"):
    st.rerun()

reservations = load_my_reservations()

if not reservations:
    st.info("You have no reservations.")
    st.caption("Items that are on loan can be reserved from the catalog.")
    st.page_link("pages/2_Catalog.py", label="Browse the catalog", icon="📚")
    st.stop()

pending = [r for r in reservations if r.get("status") == "PENDING"]
closed = [r for r in reservations if r.get("status") != "PENDING"]

tab_pending, tab_history = st.tabs([f"Waiting ({len(pending)})", f"History ({len(closed)})"])

with tab_pending:
    if not pending:
        st.info("No reservations waiting.")
    for reservation in pending:
        with st.container(border=True):
            col1, col2, col3 = st.columns([2, 1, 1])

            with col1:
                st.subheader(reservation.get("item_title") or "Unknown item")
                st.caption(f"Reserved {format_datetime(reservation.get('created_at'))}")

            with col2:
                position = reservation.get("queue_position")
                if position == 1 and reservation.get("item_status") == "AVAILABLE":
                    st.success("🎉 The item is back. Pick it up at the desk!")
                else:
                    st.info(f"#{position} in line")
                st.caption(f"Expires {format_date(reservation.get('expires_at'))}")

            with col3:
                if st.button("❌ Cancel", key=f"cancel_{reservation['id']}", use_container_width=True):
                    success, message = cancel_reservation(reservation["id"])
                    if success:
                        st.success(message)
                        st.rerun()
                    else:
                        st.error(message)

with tab_history:
    if not closed:
        st.info("No past reservations.")
    for reservation in closed:
        with st.container(border=True):
            col1, col2 = st.columns([3, 1])
            with col1:
                st.markdown(f"**{reservation.get('item_title') or 'Unknown item'}**")
                st.caption(f"Reserved {format_date(reservation.get('created_at'))}")
            with col2:
                st.markdown(status_badge(reservation.get("status"), "reservation"))
