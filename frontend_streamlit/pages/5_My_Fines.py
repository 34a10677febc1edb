"""
My Fines page.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_auth
from utils.formatters import format_currency, format_date, status_badge
from utils.state import init_session_state

init_session_state()

st.set_page_config(page_title="My Fines - Library", page_icon="💰", layout="wide")

st.title("💰 My Fines")

if not require_auth():
    st.stop()

api = get_api_client()

try:
    fines = api.get("fines/my")
except APIError as e:
    st.error(f"Could not load fines: {e.message}")
    st.stop()

col1, col2, col3 = st.columns(3)
col1.metric("Outstanding", format_currency(fines.get("total_pending")))
col2.metric("Paid", format_currency(fines.get("total_paid")))
col3.metric("Waived", format_currency(fines.get("total_waived")))

items = fines.get("items", [])
if not items:
    st.success("You have no fines. 🎉")
    st.stop()

if any(f.get("status") == "PENDING" for f in items):
    st.info("Outstanding fines are paid at the circulation desk.")

st.divider()

for fine in items:
    with st.container(border=True):
        col1, col2, col3 = st.columns([3, 1, 1])

        with col1:
            st.markdown(f"**{fine.get('reason')}**")
            details = []
            if fine.get("item_title"):
                details.append(fine["item_title"])
            details.append(f"issued {format_date(fine.get('created_at'))}")
            if fine.get("due_date") and fine.get("status") == "PENDING":
                details.append(f"pay by {format_date(fine.get('due_date'))}")
            st.caption(" · ".join(details))

        with col2:
            st.markdown(f"### {format_currency(fine.get('amount'))}")

        with col3:
            st.markdown(status_badge(fine.get("status"), "fine"))
            if fine.get("status") == "PAID":
                st.caption(f"Paid {format_date(fine.get('paid_at'))}")
            elif fine.get("status") == "WAIVED":
                st.caption(f"Waived {format_date(fine.get('waived_at'))}")
