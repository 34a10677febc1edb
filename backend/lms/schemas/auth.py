"""
Authentication schemas: registration, OTP flows and tokens.
"""

from typing import Any

from pydantic import EmailStr, Field, field_validator

from lms.models.enums import UserRole
from lms.schemas.base import BaseSchema
from lms.schemas.user import UserRead, validate_password_strength

SELF_REGISTER_ROLES = (UserRole.STUDENT, UserRole.TEACHER, UserRole.LIBRARIAN)


class RegisterRequest(BaseSchema):
    """
    Public registration.

    LIBRARIAN accounts are created inactive until an admin approves them.
    ADMIN cannot self-register.
    """
    name: str = Field(..., min_length=2, max_length=255, examples=["Jane Doe"])
    email: EmailStr = Field(..., examples=["jane@school.edu"])
    password: str = Field(..., min_length=8, max_length=128, examples=["Secret123"])
    role: UserRole = UserRole.STUDENT
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v not in SELF_REGISTER_ROLES:
            raise ValueError("Role not allowed for self-registration")
        return v


class RegisterResponse(BaseSchema):
    """Registration result; the OTP goes out by email."""
    message: str
    user: UserRead


class VerifyEmailRequest(BaseSchema):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=4, pattern=r"^\d{4}$")


class EmailRequest(BaseSchema):
    """Body carrying only an email (resend OTP, forgot password)."""
    email: EmailStr


class ResetPasswordRequest(BaseSchema):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=4, pattern=r"^\d{4}$")
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str


class RefreshRequest(BaseSchema):
    """Refresh token in the body; the cookie is used when omitted."""
    refresh_token: str | None = None


class TokenResponse(BaseSchema):
    """Access and refresh tokens."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(BaseSchema):
    """User plus tokens (login and refresh)."""
    user: UserRead
    token: TokenResponse
