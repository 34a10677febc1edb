"""
Integration tests for the authentication endpoints.
"""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from lms.core.security import hash_token
from lms.models.user import User
from lms.models.enums import UserRole
from lms.services.auth import FORGOT_PASSWORD_MESSAGE

REGISTER_URL = "/api/v1/auth/register"
VERIFY_URL = "/api/v1/auth/verify-email"
LOGIN_URL = "/api/v1/auth/login"

PASSWORD = "Secret123"
OTP = "4321"


@pytest.fixture(autouse=True)
def fixed_otp(monkeypatch):
    """Every code issued in this module is OTP; only its digest is stored."""
    monkeypatch.setattr("lms.services.auth.generate_otp", lambda: OTP)


async def _load_user(test_db, email: str) -> User:
    result = await test_db.execute(
        select(User)
        .where(User.email == email)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _register(client: AsyncClient, email: str, role: str = "STUDENT"):
    return await client.post(
        REGISTER_URL,
        json={"name": "New Patron", "email": email, "password": PASSWORD, "role": role},
    )


async def _register_and_verify(client: AsyncClient, test_db, email: str) -> User:
    await _register(client, email)
    response = await client.post(VERIFY_URL, json={"email": email, "otp": OTP})
    assert response.status_code == 200
    return await _load_user(test_db, email)


class TestRegister:
    """POST /api/v1/auth/register."""

    @pytest.mark.anyio
    async def test_register_success(self, client: AsyncClient, test_db, sent_mail):
        response = await _register(client, "new@example.com")

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["role"] == "STUDENT"
        assert data["user"]["is_verified"] is False
        assert "password_hash" not in data["user"]
        assert "otp_code" not in data["user"]

        user = await _load_user(test_db, "new@example.com")
        assert user.otp_code == hash_token(OTP)
        assert user.otp_expires_at > datetime.utcnow()
        # The code goes out by email
        assert sent_mail.await_count == 1
        assert sent_mail.await_args.args[0] == "new@example.com"

    @pytest.mark.anyio
    async def test_register_duplicate_email(self, client: AsyncClient):
        await _register(client, "dup@example.com")
        response = await _register(client, "dup@example.com")

        assert response.status_code == 400
        assert response.json()["message"] == "Email already in use"

    @pytest.mark.anyio
    async def test_register_weak_password(self, client: AsyncClient):
        response = await client.post(
            REGISTER_URL,
            json={"name": "Weak", "email": "weak@example.com", "password": "weak"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert any(d["field"] == "password" for d in body["details"])

    @pytest.mark.anyio
    async def test_register_admin_role_rejected(self, client: AsyncClient):
        response = await _register(client, "boss@example.com", role="ADMIN")
        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_register_librarian_starts_inactive(self, client: AsyncClient, test_db):
        response = await _register(client, "lib@example.com", role="LIBRARIAN")

        assert response.status_code == 201
        assert response.json()["user"]["is_active"] is False
        assert "approved by an administrator" in response.json()["message"]
        user = await _load_user(test_db, "lib@example.com")
        assert user.is_approved is False


class TestVerifyEmail:
    """POST /api/v1/auth/verify-email."""

    @pytest.mark.anyio
    async def test_verify_success_clears_otp(self, client: AsyncClient, test_db):
        user = await _register_and_verify(client, test_db, "verify@example.com")

        assert user.is_verified is True
        assert user.otp_code is None

    @pytest.mark.anyio
    async def test_verify_wrong_otp(self, client: AsyncClient, test_db):
        await _register(client, "wrong@example.com")
        response = await client.post(VERIFY_URL, json={"email": "wrong@example.com", "otp": "1000"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid OTP"

    @pytest.mark.anyio
    async def test_verify_expired_otp(self, client: AsyncClient, test_db):
        await _register(client, "late@example.com")
        user = await _load_user(test_db, "late@example.com")
        user.otp_expires_at = datetime.utcnow() - timedelta(minutes=1)
        await test_db.commit()

        response = await client.post(VERIFY_URL, json={"email": "late@example.com", "otp": OTP})

        assert response.status_code == 400
        assert response.json()["message"] == "OTP expired"

    @pytest.mark.anyio
    async def test_verify_twice(self, client: AsyncClient, test_db):
        await _register_and_verify(client, test_db, "twice@example.com")

        response = await client.post(VERIFY_URL, json={"email": "twice@example.com", "otp": "1234"})

        assert response.status_code == 400
        assert response.json()["message"] == "Email already verified"

    @pytest.mark.anyio
    async def test_verify_unknown_email(self, client: AsyncClient):
        response = await client.post(VERIFY_URL, json={"email": "ghost@example.com", "otp": "1234"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email"

    @pytest.mark.anyio
    async def test_resend_otp_replaces_code(self, client: AsyncClient, test_db, sent_mail):
        await _register(client, "resend@example.com")

        response = await client.post("/api/v1/auth/resend-otp", json={"email": "resend@example.com"})

        assert response.status_code == 200
        assert sent_mail.await_count == 2
        user = await _load_user(test_db, "resend@example.com")
        assert user.otp_code is not None


class TestLogin:
    """POST /api/v1/auth/login."""

    @pytest.mark.anyio
    async def test_login_unverified_rejected(self, client: AsyncClient):
        await _register(client, "unverified@example.com")

        response = await client.post(LOGIN_URL, json={"email": "unverified@example.com", "password": PASSWORD})

        assert response.status_code == 403
        assert response.json()["message"] == "Email not verified"

    @pytest.mark.anyio
    async def test_login_success_issues_tokens_and_cookies(self, client: AsyncClient, test_db):
        user = await _register_and_verify(client, test_db, "login@example.com")

        response = await client.post(LOGIN_URL, json={"email": "login@example.com", "password": PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == str(user.id)
        assert data["token"]["token_type"] == "bearer"
        assert data["token"]["access_token"]
        assert data["token"]["refresh_token"]

        cookies = " ".join(response.headers.get_list("set-cookie"))
        assert "access_token=" in cookies
        assert "refresh_token=" in cookies
        assert "HttpOnly" in cookies

        user = await _load_user(test_db, "login@example.com")
        assert user.refresh_token_hash is not None

    @pytest.mark.anyio
    async def test_login_wrong_password(self, client: AsyncClient, student):
        response = await client.post(LOGIN_URL, json={"email": student.email, "password": "Wrong1234"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.anyio
    async def test_login_inactive_account(self, client: AsyncClient, make_user):
        user = await make_user(UserRole.LIBRARIAN, is_active=False)

        response = await client.post(LOGIN_URL, json={"email": user.email, "password": PASSWORD})

        assert response.status_code == 403
        assert response.json()["message"] == "Account is inactive"


class TestTokens:
    """Refresh, me and logout."""

    @pytest.mark.anyio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authenticated"

    @pytest.mark.anyio
    async def test_me_with_bearer(self, client: AsyncClient, student, headers_for):
        response = await client.get("/api/v1/auth/me", headers=headers_for(student))

        assert response.status_code == 200
        assert response.json()["email"] == student.email

    @pytest.mark.anyio
    async def test_refresh_rotates_tokens(self, client: AsyncClient, student):
        login = await client.post(LOGIN_URL, json={"email": student.email, "password": PASSWORD})
        old_refresh = login.json()["token"]["refresh_token"]

        response = await client.post("/api/v1/auth/refresh-token", json={"refresh_token": old_refresh})

        assert response.status_code == 200
        new_refresh = response.json()["token"]["refresh_token"]
        assert new_refresh != old_refresh

        # The previous refresh token no longer matches the stored hash
        replay = await client.post("/api/v1/auth/refresh-token", json={"refresh_token": old_refresh})
        assert replay.status_code == 401
        assert replay.json()["message"] == "Invalid refresh token"

    @pytest.mark.anyio
    async def test_refresh_rejects_access_token(self, client: AsyncClient, student):
        login = await client.post(LOGIN_URL, json={"email": student.email, "password": PASSWORD})
        access = login.json()["token"]["access_token"]

        response = await client.post("/api/v1/auth/refresh-token", json={"refresh_token": access})

        assert response.status_code == 401

    @pytest.mark.anyio
    async def test_logout_invalidates_refresh_token(self, client: AsyncClient, student, test_db):
        login = await client.post(LOGIN_URL, json={"email": student.email, "password": PASSWORD})
        refresh = login.json()["token"]["refresh_token"]

        response = await client.post("/api/v1/auth/logout", json={"refresh_token": refresh})

        assert response.status_code == 200
        user = await _load_user(test_db, student.email)
        assert user.refresh_token_hash is None

        again = await client.post("/api/v1/auth/refresh-token", json={"refresh_token": refresh})
        assert again.status_code == 401


class TestPasswordReset:
    """forgot-password and reset-password."""

    @pytest.mark.anyio
    async def test_forgot_password_unknown_email_is_generic(self, client: AsyncClient, sent_mail):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 200
        assert response.json()["message"] == FORGOT_PASSWORD_MESSAGE
        sent_mail.assert_not_awaited()

    @pytest.mark.anyio
    async def test_reset_password_flow(self, client: AsyncClient, student, test_db):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": student.email})
        assert response.json()["message"] == FORGOT_PASSWORD_MESSAGE

        response = await client.post(
            "/api/v1/auth/reset-password",
            json={"email": student.email, "otp": OTP, "new_password": "Changed123"},
        )
        assert response.status_code == 200

        old = await client.post(LOGIN_URL, json={"email": student.email, "password": PASSWORD})
        assert old.status_code == 401
        new = await client.post(LOGIN_URL, json={"email": student.email, "password": "Changed123"})
        assert new.status_code == 200

    @pytest.mark.anyio
    async def test_reset_password_without_code(self, client: AsyncClient, student):
        response = await client.post(
            "/api/v1/auth/reset-password",
            json={"email": student.email, "otp": "1234", "new_password": "Changed123"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No OTP generated"
