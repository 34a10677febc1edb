"""
Fines desk.

Staff-only page: overdue fine calculation, payments, waivers,
reminders and manual fines. Deleting a fine is reserved to admins.
"""

from decimal import Decimal

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_staff
from utils.formatters import format_currency, format_date, status_badge
from utils.state import init_session_state, is_admin

init_session_state()

st.set_page_config(page_title="Fines - Library", page_icon="💰", layout="wide")

st.title("💰 Fines Desk")

if not require_staff():
    st.stop()

api = get_api_client()


def load_fines(status: str) -> list:
    params = {"page_size": 100}
    if status:
        params["status"] = status
    try:
        return api.get("fines", params=params).get("items", [])
    except APIError as e:
        st.error(f"Could not load fines: {e.message}")
        return []


def fine_action(method: str, endpoint: str) -> tuple[bool, str]:
    """Runs a single-fine action and returns (ok, message)."""
    try:
        response = getattr(api, method)(endpoint)
    except APIError as e:
        return False, e.message
    if isinstance(response, dict) and response.get("message"):
        return True, response["message"]
    return True, "Done"


col_calc, col_hint = st.columns([1, 3])
with col_calc:
    if st.button("🧮 Calculate overdue fines", use_container_width=True, type="primary"):
        try:
            result = api.post("fines/calculate-overdue")
        except APIError as e:
            st.error(e.message)
        else:
            st.success(result.get("message"))
with col_hint:
    st.caption("Charges $1.50 per overdue day to every open loan that does not already have a fine.")

tab_list, tab_create = st.tabs(["📄 Fines", "➕ Manual fine"])

with tab_list:
    status = st.selectbox(
        "Status",
        options=["PENDING", "PAID", "WAIVED", ""],
        format_func=lambda s: s.title() if s else "All",
    )
    fines = load_fines(status)

    if fines:
        total = sum(Decimal(str(f.get("amount") or 0)) for f in fines)
        st.caption(f"{len(fines)} fine(s) · {format_currency(total)}")
    else:
        st.info("No fines found.")

    for fine in fines:
        fine_id = fine["id"]
        with st.container(border=True):
            col1, col2, col3, col4 = st.columns([2, 2, 1, 1])

            with col1:
                st.markdown(f"**{fine.get('user_name')}**")
                st.caption(fine.get("user_email") or "")

            with col2:
                st.markdown(fine.get("reason") or "")
                extra = [f"issued {format_date(fine.get('created_at'))}"]
                if fine.get("item_title"):
                    extra.insert(0, fine["item_title"])
                if fine.get("waived_by_name"):
                    extra.append(f"waived by {fine['waived_by_name']}")
                st.caption(" · ".join(extra))

            with col3:
                st.markdown(f"**{format_currency(fine.get('amount'))}**")
                st.markdown(status_badge(fine.get("status"), "fine"))

            with col4:
                if fine.get("status") == "PENDING":
                    if st.button("💵 Paid", key=f"pay_{fine_id}", use_container_width=True):
                        success, message = fine_action("patch", f"fines/{fine_id}/pay")
                        if success:
                            st.rerun()
                        st.error(message)
                    if st.button("🕊️ Waive", key=f"waive_{fine_id}", use_container_width=True):
                        success, message = fine_action("patch", f"fines/{fine_id}/waive")
                        if success:
                            st.rerun()
                        st.error(message)
                    if st.button("✉️ Remind", key=f"remind_{fine_id}", use_container_width=True):
                        success, message = fine_action("post", f"fines/{fine_id}/send-reminder")
                        (st.success if success else st.error)(message)
                    if is_admin() and st.button("🗑️ Delete", key=f"delete_{fine_id}", use_container_width=True):
                        success, message = fine_action("delete", f"fines/{fine_id}")
                        if success:
                            st.rerun()
                        st.error(message)

with tab_create:
    st.subheader("Charge a manual fine")

    try:
        users = api.get("users", params={"is_active": True, "page_size": 100}).get("items", [])
    except APIError as e:
        st.error(e.message)
        users = []

    if users:
        user_options = {f"{u['name']} ({u['email']})": u["id"] for u in users}
        with st.form("fine_form"):
            user = st.selectbox("Patron", options=list(user_options.keys()))
            amount = st.number_input("Amount ($)", min_value=0.01, value=5.00, step=0.50, format="%.2f")
            reason = st.text_input("Reason", value="Overdue fine")

            if st.form_submit_button("Create fine", use_container_width=True):
                try:
                    api.post(
                        "fines",
                        json={
                            "user_id": user_options[user],
                            "amount": f"{amount:.2f}",
                            "reason": reason,
                        },
                    )
                except APIError as e:
                    st.error(e.message)
                else:
                    st.success("Fine created")
