"""
User schemas.
"""

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, EmailStr, Field, field_validator

from lms.models.enums import UserRole, PATRON_ROLES
from lms.schemas.base import BaseSchema, TimestampSchema


def validate_password_strength(value: str) -> str:
    """At least one uppercase letter, one lowercase letter and one digit."""
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one digit")
    return value


class UserCreate(BaseSchema):
    """
    Admin-side user creation. The account is verified on creation.

    Validation:
        - name: 2-255 characters
        - email: valid format
        - password: 8+ chars, 1 uppercase, 1 lowercase, 1 digit
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


class PatronCreate(UserCreate):
    """Librarian-side patron creation (STUDENT or TEACHER only)."""

    @field_validator("role")
    @classmethod
    def validate_patron_role(cls, v: UserRole) -> UserRole:
        if v not in PATRON_ROLES:
            raise ValueError("Patrons must be STUDENT or TEACHER")
        return v


class UserRead(TimestampSchema):
    """
    Public view of a user. Never exposes hashes or codes.
    """
    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    is_verified: bool
    is_active: bool
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("profile", "metadata"),
    )


class ProfileUpdate(BaseSchema):
    """Self-service profile update."""
    name: str | None = Field(None, min_length=2, max_length=255)
    email: EmailStr | None = None
    metadata: dict[str, Any] | None = None
    current_password: str | None = None
    new_password: str | None = Field(None, min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_password_strength(v)


class RoleUpdate(BaseSchema):
    """Admin role assignment."""
    role: UserRole


class UserStatistics(BaseSchema):
    """Account counters for the admin dashboard."""
    total: int
    active: int
    inactive: int
    verified: int
    by_role: dict[str, int]
    pending_librarians: int
    created_last_30_days: int
