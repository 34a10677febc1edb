"""
Circulation desk.

Staff-only page for desk checkouts, returns, the reservation queue
and the notification batches.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_staff
from utils.formatters import format_currency, format_date, format_datetime, loan_status, status_badge
from utils.state import PATRON_ROLES, init_session_state

init_session_state()

st.set_page_config(page_title="Circulation - Library", page_icon="🔁", layout="wide")

st.title("🔁 Circulation Desk")

if not require_staff():
    st.stop()

api = get_api_client()


def load_stats() -> dict:
    try:
        return api.get("system/stats")
    except APIError as e:
        st.error(f"Could not load statistics: {e.message}")
        return {}


def load_loans(status: str) -> list:
    params = {"page_size": 100}
    if status:
        params["status"] = status
    try:
        return api.get("loans/all", params=params).get("items", [])
    except APIError as e:
        st.error(f"Could not load loans: {e.message}")
        return []


def load_patrons() -> list:
    patrons = []
    for role in PATRON_ROLES:
        try:
            response = api.get("users", params={"role": role, "is_active": True, "page_size": 100})
        except APIError as e:
            st.error(f"Could not load patrons: {e.message}")
            return []
        patrons.extend(response.get("items", []))
    return patrons


def load_available_items() -> list:
    try:
        return api.get("items", params={"available": True, "page_size": 100}).get("items", [])
    except APIError as e:
        st.error(f"Could not load items: {e.message}")
        return []


def load_reservations() -> list:
    try:
        return api.get("reservations", params={"status": "PENDING", "page_size": 100}).get("items", [])
    except APIError as e:
        st.error(f"Could not load reservations: {e.message}")
        return []


def return_loan(loan_id: str) -> tuple[bool, str]:
    try:
        response = api.patch(f"loans/{loan_id}/return")
    except APIError as e:
        return False, e.message
    message = response.get("message", "Item returned")
    if response.get("reservation_notified"):
        message += " The next patron in line was notified."
    return True, message


def run_batch(endpoint: str) -> tuple[bool, str]:
    try:
        response = api.post(endpoint)
    except APIError as e:
        return False, e.message
    return True, response.get("message", "Done")


stats = load_stats()
if stats:
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Items", stats.get("items_total", 0))
    col2.metric("Open loans", stats.get("open_loans", 0))
    col3.metric("Overdue", stats.get("overdue_loans", 0))
    col4.metric("Reservations", stats.get("pending_reservations", 0))
    col5.metric("Unpaid fines", format_currency(stats.get("pending_fines_amount")))

tab_loans, tab_checkout, tab_queue, tab_batches = st.tabs(
    ["📗 Loans", "➕ Checkout", "📋 Reservations", "✉️ Notifications"]
)

with tab_loans:
    status = st.selectbox(
        "Show",
        options=["active", "overdue", "returned", ""],
        format_func=lambda s: s.title() if s else "All",
    )
    loans = load_loans(status)

    if not loans:
        st.info("No loans found.")
    for loan in loans:
        with st.container(border=True):
            col1, col2, col3, col4 = st.columns([2, 2, 1, 1])

            with col1:
                st.markdown(f"**{loan.get('item_title')}**")
                st.caption(loan.get("item_code") or "")

            with col2:
                st.markdown(loan.get("user_name") or "")
                st.caption(loan.get("user_email") or "")

            with col3:
                st.markdown(status_badge(loan_status(loan), "loan"))
                if loan.get("is_overdue"):
                    st.caption(f"{loan.get('days_overdue')} day(s) · {format_currency(loan.get('accrued_fine'))}")
                elif loan.get("status") == "BORROWED":
                    st.caption(f"Due {format_date(loan.get('due_date'))}")
                else:
                    st.caption(f"Returned {format_date(loan.get('return_date'))}")

            with col4:
                if loan.get("status") == "BORROWED":
                    if st.button("↩️ Return", key=f"return_{loan['id']}", use_container_width=True):
                        success, message = return_loan(loan["id"])
                        if success:
                            st.success(message)
                            st.rerun()
                        else:
                            st.error(message)

with tab_checkout:
    st.subheader("Check out an item for a patron")

    patrons = load_patrons()
    items = load_available_items()

    if not patrons or not items:
        st.info("A checkout needs at least one active patron and one available item.")
    else:
        patron_options = {f"{p['name']} ({p['email']})": p["id"] for p in patrons}
        item_options = {f"{i['title']} [{i['unique_item_id']}]": i["id"] for i in items}

        with st.form("checkout_form"):
            patron = st.selectbox("Patron", options=list(patron_options.keys()))
            item = st.selectbox("Item", options=list(item_options.keys()))

            if st.form_submit_button("Check out", use_container_width=True):
                try:
                    loan = api.post(
                        "loans/create-for-user",
                        json={"user_id": patron_options[patron], "item_id": item_options[item]},
                    )
                except APIError as e:
                    st.error(e.message)
                else:
                    st.success(f"Loan created. Due {format_date(loan.get('due_date'))}")

with tab_queue:
    col_header, col_expire = st.columns([3, 1])
    with col_header:
        st.subheader("Pending reservations")
    with col_expire:
        if st.button("⌛ Expire lapsed", use_container_width=True):
            success, message = run_batch("reservations/expire")
            (st.success if success else st.error)(message)

    reservations = load_reservations()
    if not reservations:
        st.info("The reservation queue is empty.")
    for reservation in reservations:
        with st.container(border=True):
            col1, col2, col3, col4 = st.columns([2, 2, 1, 1])

            with col1:
                st.markdown(f"**{reservation.get('item_title')}**")
                st.caption(f"Item is {str(reservation.get('item_status', '')).lower()}")

            with col2:
                st.markdown(reservation.get("user_name") or "")
                st.caption(f"Reserved {format_datetime(reservation.get('created_at'))}")

            with col3:
                st.markdown(f"#{reservation.get('queue_position')} in line")
                st.caption(f"Expires {format_date(reservation.get('expires_at'))}")

            with col4:
                if st.button("✅ Approve", key=f"approve_{reservation['id']}", use_container_width=True):
                    try:
                        response = api.patch(f"reservations/{reservation['id']}/approve")
                    except APIError as e:
                        st.error(e.message)
                    else:
                        st.success(response.get("message", "Reservation approved"))
                        st.rerun()
                if st.button("❌ Cancel", key=f"cancel_{reservation['id']}", use_container_width=True):
                    try:
                        api.delete(f"reservations/{reservation['id']}")
                    except APIError as e:
                        st.error(e.message)
                    else:
                        st.rerun()

with tab_batches:
    st.subheader("Email batches")
    st.caption("Reminders go to patrons whose loans are due within the next days; notices go to overdue loans.")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("📅 Send due reminders", use_container_width=True):
            success, message = run_batch("loans/send-due-reminders")
            (st.success if success else st.error)(message)
    with col2:
        if st.button("⚠️ Send overdue notices", use_container_width=True):
            success, message = run_batch("loans/send-overdue-notifications")
            (st.success if success else st.error)(message)
