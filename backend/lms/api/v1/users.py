"""
User management endpoints.

Contracts:
    - GET /users: List users (staff)
    - POST /users: Create any user (admin)
    - POST /users/patrons: Create a STUDENT or TEACHER (staff)
    - GET /users/statistics: Account counters (admin)
    - GET /users/librarian-requests: Librarians awaiting approval (admin)
    - PATCH /users/me: Update own profile
    - GET /users/{id}: User detail (staff)
    - PATCH /users/{id}/role: Change role (admin)
    - PATCH /users/{id}/activate: Activate / approve (admin)
    - PATCH /users/{id}/deactivate: Deactivate (admin)

Status codes:
    - 200: Success
    - 201: Created
    - 400: Email in use, wrong password, self role change or deactivation
    - 401: Not authenticated
    - 403: Not allowed
    - 404: User not found
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from lms.core.deps import AdminUser, CurrentUser, DbSession, StaffUser
from lms.models.enums import UserRole
from lms.schemas.base import PaginatedResponse
from lms.schemas.user import (
    PatronCreate,
    ProfileUpdate,
    RoleUpdate,
    UserCreate,
    UserRead,
    UserStatistics,
)
from lms.services.user import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "",
    response_model=PaginatedResponse[UserRead],
    summary="List users",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def list_users(
    db: DbSession,
    staff: StaffUser,
    role: UserRole | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, description="Name or email"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[UserRead]:
    service = UserService(db)
    users, total = await service.list_paginated(
        role=role,
        is_active=is_active,
        search=search,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[UserRead.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    description="Any role, verified on creation. **Requires ADMIN.**",
)
async def create_user(
    data: UserCreate,
    db: DbSession,
    admin: AdminUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.create(data))


@router.post(
    "/patrons",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a patron",
    description="STUDENT or TEACHER, verified on creation. **Requires LIBRARIAN or ADMIN.**",
)
async def create_patron(
    data: PatronCreate,
    db: DbSession,
    staff: StaffUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.create(data))


@router.get(
    "/statistics",
    response_model=UserStatistics,
    summary="Account counters",
    description="**Requires ADMIN.**",
)
async def user_statistics(
    db: DbSession,
    admin: AdminUser,
) -> UserStatistics:
    service = UserService(db)
    return await service.get_statistics()


@router.get(
    "/librarian-requests",
    response_model=list[UserRead],
    summary="Pending librarian registrations",
    description="Self-registered librarians waiting for activation. **Requires ADMIN.**",
)
async def librarian_requests(
    db: DbSession,
    admin: AdminUser,
) -> list[UserRead]:
    service = UserService(db)
    return [UserRead.model_validate(u) for u in await service.get_pending_librarians()]


@router.patch(
    "/me",
    response_model=UserRead,
    summary="Update my profile",
    description="Changing the password requires current_password.",
)
async def update_me(
    data: ProfileUpdate,
    db: DbSession,
    current_user: CurrentUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.update_profile(current_user, data))


@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="User detail",
    description="**Requires LIBRARIAN or ADMIN.**",
)
async def get_user(
    user_id: UUID,
    db: DbSession,
    staff: StaffUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.get_by_id(user_id))


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    summary="Change role",
    description="**Requires ADMIN.**",
)
async def change_role(
    user_id: UUID,
    data: RoleUpdate,
    db: DbSession,
    admin: AdminUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.assign_role(user_id, data.role, admin))


@router.patch(
    "/{user_id}/activate",
    response_model=UserRead,
    summary="Activate an account",
    description="Also approves pending librarians. **Requires ADMIN.**",
)
async def activate_user(
    user_id: UUID,
    db: DbSession,
    admin: AdminUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.set_active(user_id, True, admin))


@router.patch(
    "/{user_id}/deactivate",
    response_model=UserRead,
    summary="Deactivate an account",
    description="**Requires ADMIN.**",
)
async def deactivate_user(
    user_id: UUID,
    db: DbSession,
    admin: AdminUser,
) -> UserRead:
    service = UserService(db)
    return UserRead.model_validate(await service.set_active(user_id, False, admin))
