"""
Authentication service: registration, OTP verification, tokens and
password reset.
"""

import hmac
import logging
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import get_settings
from lms.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_otp,
    hash_password,
    hash_token,
    verify_password,
)
from lms.models.user import User
from lms.models.enums import UserRole
from lms.repositories.user import UserRepository
from lms.schemas.auth import LoginResponse, RegisterRequest, TokenResponse
from lms.schemas.user import UserRead
from lms.services.mailer import MailerService

logger = logging.getLogger(__name__)
settings = get_settings()

FORGOT_PASSWORD_MESSAGE = "If the email is registered, a reset code has been sent"


class AuthService:
    """Authentication operations."""

    def __init__(self, db: AsyncSession, mailer: MailerService | None = None):
        self.db = db
        self.user_repo = UserRepository(db)
        self.mailer = mailer or MailerService()

    # ==========================================
    # Registration / verification
    # ==========================================

    async def register(self, data: RegisterRequest) -> User:
        """
        Registers a new account and emails a verification code.

        Librarian accounts stay inactive until an admin approves them.

        Args:
            data: Registration payload

        Returns:
            Created user

        Raises:
            HTTPException 400: Email already in use
        """
        if await self.user_repo.email_exists(data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already in use",
            )

        otp = generate_otp()
        user = User(
            name=data.name,
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            role=data.role,
            is_verified=False,
            is_active=data.role != UserRole.LIBRARIAN,
            is_approved=data.role != UserRole.LIBRARIAN,
            profile=data.metadata,
        )
        self._set_otp(user, otp)
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info(f"User registered: {user.email} ({user.role.value})")
        await self.mailer.send_otp_email(user.email, user.name, otp)
        return user

    async def verify_email(self, email: str, otp: str) -> str:
        """
        Consumes the verification code.

        Raises:
            HTTPException 400: Unknown email, already verified, missing,
                wrong or expired code
        """
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid email",
            )
        if user.is_verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already verified",
            )

        self._check_otp(user, otp)

        user.is_verified = True
        user.otp_code = None
        user.otp_expires_at = None
        await self.db.commit()

        logger.info(f"Email verified: {user.email}")
        return "Email verified successfully"

    async def resend_otp(self, email: str) -> str:
        """
        Issues a fresh verification code.

        Raises:
            HTTPException 400: Unknown email or already verified
        """
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid email",
            )
        if user.is_verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already verified",
            )

        otp = generate_otp()
        self._set_otp(user, otp)
        await self.db.commit()

        await self.mailer.send_otp_email(user.email, user.name, otp)
        return "Verification code sent"

    # ==========================================
    # Login / tokens
    # ==========================================

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Authenticates and issues access + refresh tokens.

        Raises:
            HTTPException 401: Invalid credentials
            HTTPException 403: Email not verified or account inactive
        """
        user = await self.user_repo.get_by_email(email)

        if user is None or not verify_password(password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_verified:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Email not verified",
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is inactive",
            )

        tokens = await self._issue_tokens(user)
        logger.info(f"Login: {user.email}")
        return LoginResponse(user=UserRead.model_validate(user), token=tokens)

    async def refresh(self, refresh_token: str | None) -> LoginResponse:
        """
        Rotates the token pair.

        The presented token must match the hash stored at login (or at the
        previous refresh), so every refresh token works once.

        Raises:
            HTTPException 401: Invalid refresh token
        """
        invalid = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
        if not refresh_token:
            raise invalid

        user = await self._user_from_refresh_token(refresh_token)
        if user is None or not user.is_active:
            raise invalid

        tokens = await self._issue_tokens(user)
        return LoginResponse(user=UserRead.model_validate(user), token=tokens)

    async def logout(self, refresh_token: str | None) -> str:
        """Invalidates the stored refresh token when it is recognized."""
        if refresh_token:
            user = await self._user_from_refresh_token(refresh_token)
            if user is not None:
                user.refresh_token_hash = None
                await self.db.commit()
                logger.info(f"Logout: {user.email}")
        return "Logged out"

    async def _issue_tokens(self, user: User) -> TokenResponse:
        claims = {"email": user.email, "role": user.role.value}
        access_token = create_access_token(subject=str(user.id), extra_data=claims)
        refresh_token = create_refresh_token(subject=str(user.id), extra_data=claims)

        user.refresh_token_hash = hash_token(refresh_token)
        await self.db.commit()

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=settings.JWT_EXPIRES_MINUTES * 60,
        )

    async def _user_from_refresh_token(self, refresh_token: str) -> User | None:
        payload = decode_refresh_token(refresh_token)
        if payload is None or "sub" not in payload:
            return None

        try:
            user_id = UUID(payload["sub"])
        except ValueError:
            return None

        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.refresh_token_hash:
            return None

        if not hmac.compare_digest(user.refresh_token_hash, hash_token(refresh_token)):
            return None
        return user

    # ==========================================
    # Password reset
    # ==========================================

    async def forgot_password(self, email: str) -> str:
        """
        Emails a reset code. The answer never reveals whether the email exists.
        """
        user = await self.user_repo.get_by_email(email)
        if user is not None and user.is_active:
            otp = generate_otp()
            self._set_otp(user, otp)
            await self.db.commit()
            await self.mailer.send_otp_email(user.email, user.name, otp, purpose="reset")
        else:
            logger.info(f"Password reset requested for unknown or inactive email: {email}")

        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, email: str, otp: str, new_password: str) -> str:
        """
        Sets a new password after checking the reset code.

        Existing refresh tokens stop working.

        Raises:
            HTTPException 400: Unknown email, missing, wrong or expired code
        """
        user = await self.user_repo.get_by_email(email)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid email",
            )

        self._check_otp(user, otp)

        user.password_hash = hash_password(new_password)
        user.otp_code = None
        user.otp_expires_at = None
        user.refresh_token_hash = None
        await self.db.commit()

        logger.info(f"Password reset: {user.email}")
        return "Password reset successfully"

    # ==========================================
    # OTP helpers
    # ==========================================

    @staticmethod
    def _set_otp(user: User, otp: str) -> None:
        user.otp_code = hash_token(otp)
        user.otp_expires_at = datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    @staticmethod
    def _check_otp(user: User, otp: str) -> None:
        if not user.otp_code or user.otp_expires_at is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No OTP generated",
            )
        if not hmac.compare_digest(user.otp_code, hash_token(otp)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OTP",
            )
        if datetime.utcnow() > user.otp_expires_at.replace(tzinfo=None):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OTP expired",
            )
