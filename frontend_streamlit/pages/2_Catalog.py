"""
Catalog page.

Search items, open details, borrow available items and reserve the rest.
"""

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_auth
from utils.formatters import ITEM_TYPE_ICONS, status_badge
from utils.state import init_session_state

init_session_state()

st.set_page_config(page_title="Catalog - Library", page_icon="📚", layout="wide")

st.title("📚 Catalog")

if not require_auth():
    st.stop()

api = get_api_client()

PAGE_SIZE = 10


def load_categories() -> list:
    try:
        return api.get("categories")
    except APIError:
        return []


def load_items(page: int, search: str, item_type: str, category_id: str, available: bool | None) -> tuple[list, int]:
    """Loads one page of the catalog."""
    params = {"page": page, "page_size": PAGE_SIZE}
    if search:
        params["search"] = search
    if item_type:
        params["type"] = item_type
    if category_id:
        params["category_id"] = category_id
    if available is not None:
        params["available"] = available

    try:
        response = api.get("items", params=params)
    except APIError as e:
        st.error(f"Could not load the catalog: {e.message}")
        return [], 0
    return response.get("items", []), response.get("total", 0)


def borrow(item_id: str) -> tuple[bool, str]:
    try:
        loan = api.post("loans/borrow", json={"item_id": item_id})
    except APIError as e:
        return False, e.message
    return True, f"Borrowed! Due {loan.get('due_date', '')[:10]}"


def reserve(item_id: str) -> tuple[bool, str]:
    try:
        reservation = api.post("reservations", json={"item_id": item_id})
    except APIError as e:
        return False, e.message
    return True, f"Reserved. You are #{reservation.get('queue_position')} in line."


@st.dialog("Item details", width="large")
def show_item_modal(item: dict):
    """Item details with borrow/reserve actions."""
    icon = ITEM_TYPE_ICONS.get(item.get("type"), "📦")
    st.markdown(f"## {icon} {item.get('title', 'Untitled')}")
    st.caption(f"{item.get('type')} · {item.get('unique_item_id')}")
    st.markdown(status_badge(item.get("status"), "item"))

    if item.get("description"):
        st.write(item["description"])

    metadata = item.get("metadata") or {}
    if metadata:
        st.markdown("**Details**")
        for key, value in metadata.items():
            st.markdown(f"- **{key.replace('_', ' ').title()}:** {value}")

    categories = [c["name"] for c in item.get("categories", [])]
    if categories:
        st.caption("Categories: " + ", ".join(categories))

    st.divider()

    if item.get("status") == "AVAILABLE":
        if st.button("📗 Borrow", use_container_width=True, type="primary"):
            success, message = borrow(item["id"])
            if success:
                st.success(message)
                st.rerun()
            else:
                st.error(message)
    else:
        if st.button("📋 Reserve", use_container_width=True):
            success, message = reserve(item["id"])
            (st.success if success else st.error)(message)


with st.spinner("Loading filters..."):
    categories = load_categories()

category_options = {"All": ""}
for category in categories:
    category_options[category["name"]] = category["id"]

st.subheader("🔍 Filters")

col_search, col_type, col_category, col_available = st.columns(4)

with col_search:
    search = st.text_input("Search", placeholder="Title, author, ISBN...")

with col_type:
    item_type = st.selectbox("Type", options=["", "BOOK", "DVD", "MAGAZINE", "EQUIPMENT"],
                             format_func=lambda t: t.title() if t else "All")

with col_category:
    selected_category = st.selectbox("Category", options=list(category_options.keys()))

with col_available:
    availability = st.selectbox("Availability", options=["All", "Available", "Unavailable"])

st.divider()

if "catalog_page" not in st.session_state:
    st.session_state.catalog_page = 1

available_filter = {"All": None, "Available": True, "Unavailable": False}[availability]

with st.spinner("Loading items..."):
    items, total = load_items(
        page=st.session_state.catalog_page,
        search=search,
        item_type=item_type,
        category_id=category_options[selected_category],
        available=available_filter,
    )

total_pages = max(1, (total + PAGE_SIZE - 1) // PAGE_SIZE)

if items:
    for item in items:
        with st.container(border=True):
            col1, col2, col3 = st.columns([3, 1, 1])

            with col1:
                icon = ITEM_TYPE_ICONS.get(item.get("type"), "📦")
                st.markdown(f"### {icon} {item.get('title', 'Untitled')}")
                metadata = item.get("metadata") or {}
                creator = metadata.get("author") or metadata.get("director") or metadata.get("publisher")
                info = [f"**Code:** {item.get('unique_item_id')}"]
                if creator:
                    info.append(f"**By:** {creator}")
                st.caption(" | ".join(info))

            with col2:
                st.markdown(status_badge(item.get("status"), "item"))

            with col3:
                if st.button("📖 Details", key=f"details_{item['id']}", use_container_width=True):
                    show_item_modal(item)

    col_prev, col_info, col_next = st.columns([1, 2, 1])

    with col_prev:
        if st.button("⬅️ Previous", disabled=st.session_state.catalog_page <= 1):
            st.session_state.catalog_page -= 1
            st.rerun()

    with col_info:
        st.caption(f"Page {st.session_state.catalog_page} of {total_pages} ({total} items)")

    with col_next:
        if st.button("Next ➡️", disabled=st.session_state.catalog_page >= total_pages):
            st.session_state.catalog_page += 1
            st.rerun()

else:
    st.info("No items found.")
