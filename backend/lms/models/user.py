"""
User model.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, String
from sqlalchemy.orm import Mapped, mapped_column

from lms.db.session import Base
from lms.models.base import JSONType, UUIDMixin, TimestampMixin
from lms.models.enums import UserRole


class User(Base, UUIDMixin, TimestampMixin):
    """
    Library user: patron (STUDENT/TEACHER), LIBRARIAN or ADMIN.

    Users are never hard-deleted; is_active is the soft flag.

    Attributes:
        id: User UUID
        name: Full name
        email: Unique email, used as login
        password_hash: bcrypt hash
        role: Role driving every authorization check
        is_verified: Email confirmed through the OTP flow
        is_active: Account enabled (librarians start disabled)
        is_approved: False only for a self-registered librarian no admin
            has activated yet
        profile: Free-form JSON stored in the "metadata" column (phone, address)
        otp_code: SHA-256 of the current one-time code (verification or
            password reset)
        otp_expires_at: Expiry of otp_code
        refresh_token_hash: SHA-256 of the current refresh token
    """
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.STUDENT,
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # "metadata" is reserved on declarative classes
    profile: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        nullable=False,
        default=dict,
    )
    otp_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    otp_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.email}>"
