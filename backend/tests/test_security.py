"""
Unit tests for the security helpers.
"""

from datetime import timedelta

from lms.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    decode_token,
    generate_otp,
    hash_password,
    hash_token,
    verify_password,
)


class TestPasswordHashing:
    """Password hashing."""

    def test_hash_password_returns_hash(self):
        password = "MyPassw0rd"
        hashed = hash_password(password)

        assert hashed != password
        assert len(hashed) > 50  # bcrypt hashes are ~60 chars

    def test_hash_password_different_hashes(self):
        """Same password, different salt."""
        assert hash_password("MyPassw0rd") != hash_password("MyPassw0rd")

    def test_verify_password_correct(self):
        hashed = hash_password("MyPassw0rd")
        assert verify_password("MyPassw0rd", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("MyPassw0rd")
        assert verify_password("WrongPassw0rd", hashed) is False

    def test_verify_password_empty(self):
        hashed = hash_password("MyPassw0rd")
        assert verify_password("", hashed) is False


class TestJWT:
    """Access and refresh tokens."""

    def test_decode_token_valid(self):
        token = create_access_token(subject="user-123")
        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "user-123"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_token_with_extra_data(self):
        token = create_access_token(
            subject="user-123",
            extra_data={"role": "LIBRARIAN", "email": "lib@test.com"},
        )
        payload = decode_token(token)

        assert payload["role"] == "LIBRARIAN"
        assert payload["email"] == "lib@test.com"

    def test_decode_token_invalid(self):
        assert decode_token("invalid-token") is None

    def test_decode_token_expired(self):
        token = create_access_token(subject="user-123", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_decode_token_tampered(self):
        token = create_access_token(subject="user-123")
        assert decode_token(token[:-5] + "XXXXX") is None

    def test_refresh_token_roundtrip(self):
        token = create_refresh_token(subject="user-123")
        payload = decode_refresh_token(token)

        assert payload is not None
        assert payload["sub"] == "user-123"
        assert payload["type"] == "refresh"

    def test_refresh_token_is_not_an_access_token(self):
        """Refresh tokens use another secret and type; they never authenticate."""
        token = create_refresh_token(subject="user-123")
        assert decode_token(token) is None

    def test_access_token_is_not_a_refresh_token(self):
        token = create_access_token(subject="user-123")
        assert decode_refresh_token(token) is None

    def test_tokens_are_unique(self):
        """jti keeps two tokens issued in the same second apart."""
        assert create_refresh_token(subject="u") != create_refresh_token(subject="u")


class TestOtpAndHashing:

    def test_generate_otp_is_four_digits(self):
        for _ in range(200):
            otp = generate_otp()
            assert len(otp) == 4
            assert 1000 <= int(otp) <= 9999

    def test_hash_token_is_stable_sha256(self):
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 64
        assert hash_token("abc") != hash_token("abd")
