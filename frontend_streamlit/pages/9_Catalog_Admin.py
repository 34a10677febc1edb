"""
Catalog administration.

Staff-only page for creating, editing, archiving and restoring items,
and for managing categories.
"""

import json

import streamlit as st

from utils.api_client import APIError, get_api_client
from utils.auth import require_staff
from utils.formatters import ITEM_TYPE_ICONS, format_datetime, status_badge
from utils.state import init_session_state

init_session_state()

st.set_page_config(page_title="Catalog Admin - Library", page_icon="🗂️", layout="wide")

st.title("🗂️ Catalog Administration")

if not require_staff():
    st.stop()

api = get_api_client()

ITEM_TYPES = ["BOOK", "DVD", "MAGAZINE", "EQUIPMENT"]
# BORROWED is set by circulation only
EDITABLE_STATUSES = ["AVAILABLE", "MAINTENANCE"]


def load_categories() -> list:
    try:
        return api.get("categories")
    except APIError as e:
        st.error(f"Could not load categories: {e.message}")
        return []


def load_items(search: str, include_archived: bool) -> list:
    params = {"page_size": 100, "include_archived": include_archived}
    if search:
        params["search"] = search
    try:
        return api.get("items", params=params).get("items", [])
    except APIError as e:
        st.error(f"Could not load items: {e.message}")
        return []


def parse_metadata(raw: str) -> dict | None:
    """Parses the metadata text area; None means invalid JSON."""
    if not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


try:
    stats = api.get("items/stats")
except APIError as e:
    st.error(e.message)
    stats = {}

if stats:
    by_status = stats.get("by_status", {})
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Items", stats.get("total", 0))
    col2.metric("Available", by_status.get("AVAILABLE", 0))
    col3.metric("Borrowed", by_status.get("BORROWED", 0))
    col4.metric("Maintenance", by_status.get("MAINTENANCE", 0))
    col5.metric("Archived", stats.get("archived", 0))

categories = load_categories()
category_names = {c["id"]: c["name"] for c in categories}

tab_items, tab_new, tab_categories = st.tabs(["📦 Items", "➕ New item", "🏷️ Categories"])

with tab_items:
    col_search, col_archived = st.columns([3, 1])
    with col_search:
        search = st.text_input("Search", placeholder="Title or code")
    with col_archived:
        include_archived = st.checkbox("Include archived")

    items = load_items(search, include_archived)
    if not items:
        st.info("No items found.")

    for item in items:
        item_id = item["id"]
        icon = ITEM_TYPE_ICONS.get(item.get("type"), "📦")
        label = f"{icon} {item.get('title')} · {item.get('unique_item_id')}"
        if item.get("is_archived"):
            label += " (archived)"

        with st.expander(label):
            st.markdown(status_badge(item.get("status"), "item"))
            st.caption(f"Updated {format_datetime(item.get('updated_at'))}")

            with st.form(f"edit_{item_id}"):
                title = st.text_input("Title", value=item.get("title", ""))
                item_type = st.selectbox("Type", ITEM_TYPES, index=ITEM_TYPES.index(item.get("type", "BOOK")))
                description = st.text_area("Description", value=item.get("description") or "")
                status = None
                if item.get("status") in EDITABLE_STATUSES:
                    status = st.selectbox(
                        "Status", EDITABLE_STATUSES, index=EDITABLE_STATUSES.index(item["status"])
                    )
                selected = st.multiselect(
                    "Categories",
                    options=list(category_names.keys()),
                    default=[c["id"] for c in item.get("categories", [])],
                    format_func=lambda cid: category_names.get(cid, cid),
                )
                metadata_raw = st.text_area(
                    "Metadata (JSON, merged into the current metadata)",
                    value=json.dumps(item.get("metadata") or {}, indent=2),
                )

                if st.form_submit_button("Save", use_container_width=True):
                    metadata = parse_metadata(metadata_raw)
                    if metadata is None:
                        st.error("Metadata must be a JSON object")
                    else:
                        payload = {
                            "title": title,
                            "type": item_type,
                            "description": description or None,
                            "category_ids": selected,
                            "metadata": metadata,
                        }
                        if status:
                            payload["status"] = status
                        try:
                            api.patch(f"items/{item_id}", json=payload)
                        except APIError as e:
                            st.error(e.message)
                        else:
                            st.success("Item updated")
                            st.rerun()

            if item.get("is_archived"):
                if st.button("♻️ Restore", key=f"restore_{item_id}"):
                    try:
                        api.patch(f"items/{item_id}/unarchive")
                    except APIError as e:
                        st.error(e.message)
                    else:
                        st.rerun()
            elif st.button("🗄️ Archive", key=f"archive_{item_id}"):
                try:
                    api.delete(f"items/{item_id}")
                except APIError as e:
                    st.error(e.message)
                else:
                    st.rerun()

with tab_new:
    with st.form("new_item_form", clear_on_submit=True):
        title = st.text_input("Title *")
        item_type = st.selectbox("Type", ITEM_TYPES)
        unique_item_id = st.text_input("Code", placeholder="Leave empty to generate one")
        description = st.text_area("Description")
        selected = st.multiselect(
            "Categories",
            options=list(category_names.keys()),
            format_func=lambda cid: category_names.get(cid, cid),
        )
        metadata_raw = st.text_area("Metadata (JSON)", placeholder='{"author": "Frank Herbert"}')

        if st.form_submit_button("Create item", use_container_width=True):
            metadata = parse_metadata(metadata_raw)
            if not title:
                st.error("Title is required")
            elif metadata is None:
                st.error("Metadata must be a JSON object")
            else:
                payload = {
                    "title": title,
                    "type": item_type,
                    "description": description or None,
                    "category_ids": selected,
                    "metadata": metadata,
                }
                if unique_item_id:
                    payload["unique_item_id"] = unique_item_id
                try:
                    created = api.post("items", json=payload)
                except APIError as e:
                    st.error(e.message)
                else:
                    st.success(f"Created '{created.get('title')}' ({created.get('unique_item_id')})")

with tab_categories:
    if categories:
        for category in categories:
            st.markdown(f"- **{category['name']}** {category.get('description') or ''}")
    else:
        st.info("No categories yet.")

    with st.form("category_form", clear_on_submit=True):
        name = st.text_input("Name")
        description = st.text_input("Description")
        if st.form_submit_button("Add category"):
            try:
                api.post("categories", json={"name": name, "description": description or None})
            except APIError as e:
                st.error(e.message)
            else:
                st.success(f"Category '{name}' created")
                st.rerun()
