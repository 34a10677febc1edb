"""
My Loans page.

Open loans with due dates and renewal, plus the loan history.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_auth
from utils.formatters import (
    calculate_days_until,
    format_currency,
    format_date,
    format_days_remaining,
    loan_status,
    status_badge,
)
from utils.state import init_session_state

init_session_state()

st.set_page_config(page_title="My Loans - Library", page_icon="📗", layout="wide")

st.title("📗 My Loans")

if not require_auth():
    st.stop()

api = get_api_client()

MAX_RENEWALS = 2


def load_my_loans() -> list:
    try:
        return api.get("loans/my-loans")
    except APIError as e:
        st.error(f"Could not load loans: {e.message}")
        return []


def renew_loan(loan_id: str) -> tuple[bool, str]:
    try:
        response = api.patch(f"loans/{loan_id}/renew")
    except APIError as e:
        return False, e.message
    return True, response.get("message", "Loan renewed")


if st.button("🔄 Refresh"):
    st.rerun()

loans = load_my_loans()

if not loans:
    st.info("You have no loans.")
    st.page_link("pages/2_Catalog.py", label="Browse the catalog", icon="📚")
    st.stop()

active_loans = [loan for loan in loans if loan.get("status") == "BORROWED"]
returned_loans = [loan for loan in loans if loan.get("status") == "RETURNED"]

overdue = [loan for loan in active_loans if loan.get("is_overdue")]
if overdue:
    accrued = sum(float(loan.get("accrued_fine") or 0) for loan in overdue)
    st.error(
        f"⚠️ {len(overdue)} overdue loan(s). Late fees accrue at $1.50 per day "
        f"(currently {format_currency(accrued)}). Please return them at the desk."
    )

tab_active, tab_history = st.tabs([f"Open ({len(active_loans)})", f"History ({len(returned_loans)})"])

with tab_active:
    if not active_loans:
        st.info("No open loans.")
    for loan in active_loans:
        loan_id = loan["id"]
        days_remaining = calculate_days_until(loan.get("due_date"))
        renewals = loan.get("renewal_count", 0)

        with st.container(border=True):
            col1, col2, col3 = st.columns([2, 1, 1])

            with col1:
                st.subheader(loan.get("item_title") or "Unknown item")
                st.caption(f"{loan.get('item_code', '')} · borrowed {format_date(loan.get('loan_date'))}")

            with col2:
                if loan.get("is_overdue"):
                    st.error(f"⚠️ {loan.get('days_overdue')} day(s) overdue")
                    st.caption(f"Accrued fee: {format_currency(loan.get('accrued_fine'))}")
                else:
                    st.info(f"📅 Due {format_date(loan.get('due_date'))}")
                    st.caption(format_days_remaining(days_remaining))
                st.caption(f"Renewals: {renewals}/{MAX_RENEWALS}")

            with col3:
                st.markdown(status_badge(loan_status(loan), "loan"))
                can_renew = renewals < MAX_RENEWALS and not loan.get("is_overdue")
                if st.button(
                    "🔄 Renew",
                    key=f"renew_{loan_id}",
                    use_container_width=True,
                    disabled=not can_renew,
                ):
                    success, message = renew_loan(loan_id)
                    if success:
                        st.success(message)
                        st.rerun()
                    else:
                        st.error(message)

    st.caption("Items are returned at the circulation desk.")

with tab_history:
    if not returned_loans:
        st.info("No returned loans yet.")
    for loan in returned_loans:
        with st.container(border=True):
            col1, col2, col3 = st.columns([2, 1, 1])

            with col1:
                st.markdown(f"**{loan.get('item_title') or 'Unknown item'}**")
                st.caption(f"Borrowed {format_date(loan.get('loan_date'))}")

            with col2:
                st.caption(f"Returned {format_date(loan.get('return_date'))}")

            with col3:
                st.markdown(status_badge("RETURNED", "loan"))
