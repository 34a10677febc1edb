"""
FastAPI dependencies for authentication and authorization.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.security import decode_token
from lms.db.session import get_db
from lms.models.user import User
from lms.models.enums import UserRole

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

# Bearer scheme; the cookie is the fallback so auto_error stays off
security = HTTPBearer(auto_error=False)


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """Returns the bearer token, or the access cookie when no header is sent."""
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(ACCESS_COOKIE)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency returning the authenticated user.

    Reads the JWT from the Authorization header or the access_token cookie,
    decodes it and loads the user.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or unknown user
        HTTPException 403: Account deactivated
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(token)
    if payload is None:
        raise credentials_exception

    user_id: str | None = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return user


class RoleChecker:
    """
    Dependency that restricts an endpoint to a set of roles.

    ADMIN passes every check.

    Args:
        allowed: Roles accepted besides ADMIN
    """

    def __init__(self, *allowed: UserRole):
        self.allowed = set(allowed)

    async def __call__(
        self,
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role == UserRole.ADMIN or current_user.role in self.allowed:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )


require_staff = RoleChecker(UserRole.LIBRARIAN)
require_admin = RoleChecker()


def is_staff(user: User) -> bool:
    """True for librarians and admins."""
    return user.role in (UserRole.LIBRARIAN, UserRole.ADMIN)


# Type aliases used by the endpoints
CurrentUser = Annotated[User, Depends(get_current_user)]
StaffUser = Annotated[User, Depends(require_staff)]
AdminUser = Annotated[User, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
