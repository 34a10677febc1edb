"""
Login, registration, email verification and password reset.
"""

import streamlit as st

from utils.auth import (
    login_user,
    logout_user,
    register_user,
    request_password_reset,
    resend_otp,
    reset_password,
    verify_email,
)
from utils.state import init_session_state, is_authenticated, get_user_name, get_user_role

init_session_state()

st.set_page_config(page_title="Login - Library", page_icon="🔐", layout="centered")

st.title("🔐 Authentication")

if is_authenticated():
    st.success(f"Logged in as **{get_user_name()}** ({get_user_role()})")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("📚 Go to catalog", use_container_width=True):
            st.switch_page("pages/2_Catalog.py")
    with col2:
        if st.button("🚪 Log out", use_container_width=True, type="secondary"):
            logout_user()
            st.rerun()
    st.stop()

tab_login, tab_register, tab_verify, tab_reset = st.tabs(
    ["Login", "Create account", "Verify email", "Forgot password"]
)

with tab_login:
    st.subheader("Sign in")

    with st.form("login_form"):
        email = st.text_input("Email", placeholder="you@school.edu")
        password = st.text_input("Password", type="password", placeholder="••••••••")

        if st.form_submit_button("Sign in", use_container_width=True):
            with st.spinner("Signing in..."):
                success, message = login_user(email, password)

            if success:
                st.success(message)
                st.rerun()
            else:
                st.error(message)
                if st.session_state.pending_email:
                    st.info("Open the **Verify email** tab to enter your code.")

    st.divider()
    st.caption("Demo accounts (after running the seed):")
    st.code(
        "Admin:     admin@library.example.com / Admin123!\n"
        "Librarian: librarian@library.example.com / Library123\n"
        "Student:   student@library.example.com / Library123"
    )

with tab_register:
    st.subheader("Create a patron account")

    with st.form("register_form"):
        name = st.text_input("Full name", placeholder="Jane Doe")
        email = st.text_input("Email", placeholder="you@school.edu", key="register_email")
        role = st.selectbox(
            "I am a",
            options=["STUDENT", "TEACHER", "LIBRARIAN"],
            format_func=lambda r: r.title(),
        )
        password = st.text_input(
            "Password",
            type="password",
            placeholder="At least 8 characters",
            key="register_password",
        )
        password_confirm = st.text_input("Confirm password", type="password")

        if st.form_submit_button("Create account", use_container_width=True):
            if password != password_confirm:
                st.error("Passwords do not match")
            else:
                with st.spinner("Creating account..."):
                    success, message = register_user(name, email, password, role)

                if success:
                    st.success(message)
                    st.info("Check your email and enter the 4-digit code in **Verify email**.")
                else:
                    st.error(message)

    st.caption("Passwords need an uppercase letter, a lowercase letter and a digit.")
    st.caption("Librarian accounts stay inactive until an administrator approves them.")

with tab_verify:
    st.subheader("Verify your email")

    with st.form("verify_form"):
        email = st.text_input(
            "Email",
            value=st.session_state.pending_email or "",
            key="verify_email",
        )
        otp = st.text_input("Code", max_chars=4, placeholder="1234")

        if st.form_submit_button("Verify", use_container_width=True):
            success, message = verify_email(email, otp)
            if success:
                st.success(f"{message}. You can now sign in.")
            else:
                st.error(message)

    if st.button("Send a new code"):
        email = st.session_state.get("verify_email") or st.session_state.pending_email
        if not email:
            st.error("Enter your email first")
        else:
            success, message = resend_otp(email)
            (st.success if success else st.error)(message)

with tab_reset:
    st.subheader("Reset your password")

    with st.form("forgot_form"):
        email = st.text_input("Email", key="forgot_email")
        if st.form_submit_button("Send reset code", use_container_width=True):
            success, message = request_password_reset(email)
            (st.success if success else st.error)(message)

    with st.form("reset_form"):
        email = st.text_input("Email", key="reset_email")
        otp = st.text_input("Code", max_chars=4, key="reset_otp")
        new_password = st.text_input("New password", type="password")

        if st.form_submit_button("Change password", use_container_width=True):
            success, message = reset_password(email, otp, new_password)
            (st.success if success else st.error)(message)
