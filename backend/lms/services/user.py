"""
User management: profile, staff and admin operations.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.security import hash_password, verify_password
from lms.models.user import User
from lms.models.enums import ActivityType, UserRole
from lms.repositories.user import UserRepository
from lms.schemas.user import ProfileUpdate, UserCreate, UserStatistics
from lms.services.activity import ActivityService

logger = logging.getLogger(__name__)


class UserService:
    """User operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = UserRepository(db)
        self.activity = ActivityService(db)

    async def get_by_id(self, user_id: UUID) -> User:
        """
        Fetches a user.

        Raises:
            HTTPException 404: User not found
        """
        user = await self.repo.get_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    async def create(self, data: UserCreate) -> User:
        """
        Creates an account from the staff side. It is verified and active
        from the start.

        Raises:
            HTTPException 400: Email already in use
        """
        if await self.repo.email_exists(data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already in use",
            )

        user = await self.repo.create(
            name=data.name,
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            role=data.role,
            is_verified=True,
            is_active=True,
            profile=data.metadata,
        )
        logger.info(f"User created by staff: {user.email} ({user.role.value})")
        return user

    async def list_paginated(
        self,
        role: UserRole | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[User], int]:
        return await self.repo.search(
            role=role,
            is_active=is_active,
            search=search,
            page=page,
            page_size=page_size,
        )

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        """
        Self-service update of name, email, metadata and password.

        Raises:
            HTTPException 400: Email already in use, wrong or missing
                current password
        """
        if data.email and data.email.lower() != user.email:
            if await self.repo.email_exists(data.email):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already in use",
                )
            user.email = data.email.lower()

        if data.new_password:
            if not data.current_password or not verify_password(
                data.current_password, user.password_hash
            ):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Current password is incorrect",
                )
            user.password_hash = hash_password(data.new_password)
            # Other sessions must log in again
            user.refresh_token_hash = None

        if data.name:
            user.name = data.name
        if data.metadata is not None:
            user.profile = {**(user.profile or {}), **data.metadata}

        await self.db.commit()
        await self.db.refresh(user)

        await self.activity.log(user.id, ActivityType.PROFILE_UPDATED)
        return user

    async def assign_role(self, user_id: UUID, role: UserRole, admin: User) -> User:
        """
        Changes a user's role.

        Raises:
            HTTPException 400: Admin changing their own role
            HTTPException 404: User not found
        """
        user = await self.get_by_id(user_id)
        if user.id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot change your own role",
            )

        previous = user.role
        user.role = role
        # New claims only reach the client through a fresh login
        user.refresh_token_hash = None
        await self.db.commit()
        await self.db.refresh(user)

        await self.activity.log(
            user.id,
            ActivityType.ROLE_CHANGED,
            f"{previous.value} -> {role.value} by {admin.email}",
        )
        logger.info(f"Role changed for {user.email}: {previous.value} -> {role.value}")
        return user

    async def set_active(self, user_id: UUID, active: bool, admin: User) -> User:
        """
        Activates or deactivates an account (soft flag, never deleted).

        Activating a pending librarian is the approval step.

        Raises:
            HTTPException 400: Admin deactivating themselves
            HTTPException 404: User not found
        """
        user = await self.get_by_id(user_id)
        if not active and user.id == admin.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot deactivate your own account",
            )

        user.is_active = active
        if active:
            user.is_approved = True
        else:
            user.refresh_token_hash = None
        await self.db.commit()
        await self.db.refresh(user)

        action = ActivityType.USER_ACTIVATED if active else ActivityType.USER_DEACTIVATED
        await self.activity.log(user.id, action, f"by {admin.email}")
        return user

    async def get_pending_librarians(self) -> list[User]:
        return await self.repo.get_pending_librarians()

    async def get_statistics(self) -> UserStatistics:
        """Counters for the admin dashboard."""
        total = await self.repo.count()
        active = await self.repo.count_where(User.is_active.is_(True))
        verified = await self.repo.count_where(User.is_verified.is_(True))
        by_role = await self.repo.count_by_role()
        pending = len(await self.repo.get_pending_librarians())
        recent = await self.repo.count_created_since(datetime.utcnow() - timedelta(days=30))

        return UserStatistics(
            total=total,
            active=active,
            inactive=total - active,
            verified=verified,
            by_role={role.value: by_role.get(role.value, 0) for role in UserRole},
            pending_librarians=pending,
            created_last_30_days=recent,
        )
