"""
Library Management - Streamlit frontend

Main entry point for the Streamlit application.
Dashboards for patrons, librarians and administrators on top of the API.
"""

import streamlit as st

from utils.state import (
    init_session_state,
    is_authenticated,
    is_admin,
    is_staff,
    get_user_name,
    get_user_role,
)
from utils.auth import logout_user

init_session_state()

st.set_page_config(
    page_title="Library",
    page_icon="📚",
    layout="wide",
    initial_sidebar_state="expanded",
)

with st.sidebar:
    st.title("📚 Library")
    st.caption("Library Management System")

    st.divider()

    st.subheader("⚙️ Settings")
    base_url = st.text_input(
        "Backend URL",
        value=st.session_state.get("base_url", "http://localhost:8000"),
        help="API base URL (without /api/v1)",
    )
    if base_url != st.session_state.base_url:
        st.session_state.base_url = base_url

    st.divider()

    if is_authenticated():
        st.success(f"👤 {get_user_name()}")
        st.caption(f"Role: {get_user_role()}")

        if st.button("🚪 Log out", use_container_width=True):
            logout_user()
            st.rerun()
    else:
        st.warning("Not logged in")
        st.page_link("pages/1_Login.py", label="Log in", icon="🔐")

    st.divider()

    st.subheader("📖 Navigation")

    st.page_link("pages/1_Login.py", label="Login / Sign up", icon="🔐")

    if is_authenticated():
        st.page_link("pages/2_Catalog.py", label="Catalog", icon="📚")
        st.page_link("pages/3_My_Loans.py", label="My loans", icon="📗")
        st.page_link("pages/4_My_Reservations.py", label="My reservations", icon="📋")
        st.page_link("pages/5_My_Fines.py", label="My fines", icon="💰")
        st.page_link("pages/6_Profile.py", label="Profile", icon="👤")

        if is_staff():
            st.divider()
            st.caption("Library staff")
            st.page_link("pages/7_Circulation.py", label="Circulation desk", icon="🔁")
            st.page_link("pages/8_Fines_Desk.py", label="Fines desk", icon="💵")
            st.page_link("pages/9_Catalog_Admin.py", label="Catalog admin", icon="🗂️")

        if is_admin():
            st.page_link("pages/10_Admin_Users.py", label="Users", icon="👥")

st.title("📚 Welcome to the Library")

st.markdown("""
Borrow, reserve and keep track of library items from one place.

### Features

#### For students and teachers
- 📚 **Catalog**: Search books, DVDs, magazines and equipment
- 📗 **Loans**: Borrow available items for 14 days, renew up to 2 times
- 📋 **Reservations**: Join the queue for items that are on loan
- 💰 **Fines**: See late fees ($1.50 per overdue day) and what is settled

#### For librarians
- 🔁 **Circulation**: Desk checkouts, returns and the reservation queue
- 💵 **Fines**: Calculate overdue fines, record payments and waivers
- 🗂️ **Catalog**: Add, edit, archive and categorize items

#### For administrators
- 👥 **Users**: Roles, activation, librarian approvals and the activity log

### Getting started

1. Create an account and confirm the code we email you
2. Browse the catalog
3. Borrow or reserve what you need
""")

if not is_authenticated():
    st.info("👆 Log in to get started.")

    col1, col2 = st.columns(2)

    with col1:
        st.markdown("**Demo accounts:**")
        st.code(
            "admin@library.example.com / Admin123!\n"
            "librarian@library.example.com / Library123\n"
            "student@library.example.com / Library123"
        )

    with col2:
        st.page_link(
            "pages/1_Login.py",
            label="Go to login",
            icon="🔐",
            use_container_width=True,
        )

else:
    st.success(f"Hello, **{get_user_name()}**! Pick a page in the sidebar.")

    col1, col2, col3 = st.columns(3)

    with col1:
        st.page_link(
            "pages/2_Catalog.py",
            label="📚 Browse the catalog",
            use_container_width=True,
        )

    with col2:
        st.page_link(
            "pages/3_My_Loans.py",
            label="📗 My loans",
            use_container_width=True,
        )

    with col3:
        if is_staff():
            st.page_link(
                "pages/7_Circulation.py",
                label="🔁 Circulation desk",
                use_container_width=True,
            )
        else:
            st.page_link(
                "pages/4_My_Reservations.py",
                label="📋 My reservations",
                use_container_width=True,
            )

st.divider()

st.caption("Library Management System")
