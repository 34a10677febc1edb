"""
Pydantic schemas.
"""

from lms.schemas.base import (
    BaseSchema,
    ErrorDetail,
    ErrorResponse,
    MessageResponse,
    PaginatedResponse,
    TimestampSchema,
)
from lms.schemas.health import HealthResponse
from lms.schemas.user import (
    PatronCreate,
    ProfileUpdate,
    RoleUpdate,
    UserCreate,
    UserRead,
    UserStatistics,
)
from lms.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from lms.schemas.item import (
    CategoryCreate,
    CategoryRead,
    ItemCreate,
    ItemRead,
    ItemStats,
    ItemUpdate,
)
from lms.schemas.fine import (
    FineCreate,
    FineDetail,
    FineReminderResult,
    MyFines,
    OverdueCalculationResult,
    FINE_PER_DAY,
)
from lms.schemas.loan import (
    BorrowRequest,
    LoanDetail,
    LoanForUserCreate,
    LoanRenew,
    LoanReturn,
    NotificationResult,
    LOAN_PERIOD_DAYS,
    MAX_ACTIVE_LOANS,
    MAX_RENEWALS,
)
from lms.schemas.reservation import (
    ExpireReservationsResult,
    ReservationApproveResponse,
    ReservationCreate,
    ReservationDetail,
    RESERVATION_EXPIRY_DAYS,
)
from lms.schemas.activity import ActivityRead
from lms.schemas.system import LibraryStats

__all__ = [
    # Base
    "BaseSchema",
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    "PaginatedResponse",
    "TimestampSchema",
    # Health
    "HealthResponse",
    # User
    "PatronCreate",
    "ProfileUpdate",
    "RoleUpdate",
    "UserCreate",
    "UserRead",
    "UserStatistics",
    # Auth
    "EmailRequest",
    "LoginRequest",
    "LoginResponse",
    "RefreshRequest",
    "RegisterRequest",
    "RegisterResponse",
    "ResetPasswordRequest",
    "TokenResponse",
    "VerifyEmailRequest",
    # Catalog
    "CategoryCreate",
    "CategoryRead",
    "ItemCreate",
    "ItemRead",
    "ItemStats",
    "ItemUpdate",
    # Fine
    "FineCreate",
    "FineDetail",
    "FineReminderResult",
    "MyFines",
    "OverdueCalculationResult",
    "FINE_PER_DAY",
    # Loan
    "BorrowRequest",
    "LoanDetail",
    "LoanForUserCreate",
    "LoanRenew",
    "LoanReturn",
    "NotificationResult",
    "LOAN_PERIOD_DAYS",
    "MAX_ACTIVE_LOANS",
    "MAX_RENEWALS",
    # Reservation
    "ExpireReservationsResult",
    "ReservationApproveResponse",
    "ReservationCreate",
    "ReservationDetail",
    "RESERVATION_EXPIRY_DAYS",
    # Activity / system
    "ActivityRead",
    "LibraryStats",
]
