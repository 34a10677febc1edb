"""
Authentication endpoints.

Tokens are returned in the body and mirrored in httpOnly cookies, so both
bearer clients and browsers work.

Rate limiting:
    - rate_limit_auth (10 req/min): /register, /verify-email, /login,
      /reset-password
    - rate_limit_mail (5 req/10 min): /resend-otp, /forgot-password
"""

from fastapi import APIRouter, Depends, Request, Response, status

from lms.core.config import get_settings
from lms.core.deps import ACCESS_COOKIE, REFRESH_COOKIE, CurrentUser, DbSession
from lms.core.rate_limit import rate_limit_auth, rate_limit_mail
from lms.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from lms.schemas.base import MessageResponse
from lms.schemas.user import UserRead
from lms.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])
settings = get_settings()


def _set_auth_cookies(response: Response, result: LoginResponse) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        result.token.access_token,
        max_age=settings.JWT_EXPIRES_MINUTES * 60,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        result.token.refresh_token,
        max_age=settings.JWT_REFRESH_EXPIRES_DAYS * 24 * 3600,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Creates an account and emails a 4-digit verification code.",
)
async def register(
    data: RegisterRequest,
    db: DbSession,
    _: None = Depends(rate_limit_auth),
) -> RegisterResponse:
    """
    Public registration.

    - **password**: 8+ chars, 1 uppercase, 1 lowercase, 1 digit
    - **role**: STUDENT (default), TEACHER or LIBRARIAN

    Librarian accounts wait for admin approval before they can log in.
    """
    service = AuthService(db)
    user = await service.register(data)
    message = "Registration successful. Check your email for the verification code."
    if not user.is_active:
        message += " Your librarian account must be approved by an administrator."
    return RegisterResponse(message=message, user=UserRead.model_validate(user))


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    summary="Verify email",
)
async def verify_email(
    data: VerifyEmailRequest,
    db: DbSession,
    _: None = Depends(rate_limit_auth),
) -> MessageResponse:
    service = AuthService(db)
    return MessageResponse(message=await service.verify_email(data.email, data.otp))


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    summary="Resend verification code",
)
async def resend_otp(
    data: EmailRequest,
    db: DbSession,
    _: None = Depends(rate_limit_mail),
) -> MessageResponse:
    service = AuthService(db)
    return MessageResponse(message=await service.resend_otp(data.email))


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    description="Returns the user with access and refresh tokens and sets the auth cookies.",
)
async def login(
    data: LoginRequest,
    response: Response,
    db: DbSession,
    _: None = Depends(rate_limit_auth),
) -> LoginResponse:
    """
    Usage: `Authorization: Bearer <access_token>` or the access_token cookie.
    """
    service = AuthService(db)
    result = await service.login(data.email, data.password)
    _set_auth_cookies(response, result)
    return result


@router.post(
    "/refresh-token",
    response_model=LoginResponse,
    summary="Rotate tokens",
    description="Takes the refresh token from the body or the refresh_token cookie.",
)
async def refresh_token(
    request: Request,
    response: Response,
    db: DbSession,
    data: RefreshRequest | None = None,
) -> LoginResponse:
    token = (data.refresh_token if data else None) or request.cookies.get(REFRESH_COOKIE)
    service = AuthService(db)
    result = await service.refresh(token)
    _set_auth_cookies(response, result)
    return result


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset code",
)
async def forgot_password(
    data: EmailRequest,
    db: DbSession,
    _: None = Depends(rate_limit_mail),
) -> MessageResponse:
    """The answer is the same whether or not the email is registered."""
    service = AuthService(db)
    return MessageResponse(message=await service.forgot_password(data.email))


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with the emailed code",
)
async def reset_password(
    data: ResetPasswordRequest,
    db: DbSession,
    _: None = Depends(rate_limit_auth),
) -> MessageResponse:
    service = AuthService(db)
    message = await service.reset_password(data.email, data.otp, data.new_password)
    return MessageResponse(message=message)


@router.get(
    "/me",
    response_model=UserRead,
    summary="Authenticated user",
)
async def get_me(current_user: CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
    description="Invalidates the stored refresh token and clears the auth cookies.",
)
async def logout(
    request: Request,
    response: Response,
    db: DbSession,
    data: RefreshRequest | None = None,
) -> MessageResponse:
    token = (data.refresh_token if data else None) or request.cookies.get(REFRESH_COOKIE)
    service = AuthService(db)
    message = await service.logout(token)
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return MessageResponse(message=message)
