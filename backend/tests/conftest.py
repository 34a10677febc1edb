"""
Shared test fixtures.

Every test gets a fresh in-memory SQLite database (aiosqlite) created from
the model metadata; the app's get_db dependency is bound to it. Outgoing
mail is replaced by a mock.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import lms.models  # noqa: F401
from lms.core.security import create_access_token, hash_password
from lms.db.session import Base, build_engine, get_db
from lms.main import app
from lms.models.item import LibraryItem
from lms.models.loan import Loan
from lms.models.user import User
from lms.models.enums import ItemStatus, ItemType, LoanStatus, UserRole
from lms.services.mailer import MailerService

TEST_PASSWORD = "Secret123"


# ==========================================
# Event loop configuration
# ==========================================

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ==========================================
# Database fixtures
# ==========================================

@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of one test."""
    engine = build_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by the tests to arrange and inspect data."""
    async with session_factory() as session:
        yield session


# ==========================================
# Mail
# ==========================================

@pytest.fixture(autouse=True)
def sent_mail():
    """Captures every outgoing message; nothing leaves the process."""
    mock = AsyncMock(return_value=True)
    with patch.object(MailerService, "send_email", new=mock):
        yield mock


# ==========================================
# HTTP client
# ==========================================

@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with get_db bound to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ==========================================
# Factories
# ==========================================

def auth_headers(user: User) -> dict:
    """Bearer header for a user."""
    token = create_access_token(
        subject=str(user.id),
        extra_data={"email": user.email, "role": user.role.value},
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(test_db):
    """Creates a user directly in the database."""
    counter = {"n": 0}

    async def _make(
        role: UserRole = UserRole.STUDENT,
        email: str | None = None,
        name: str = "Test User",
        is_verified: bool = True,
        is_active: bool = True,
        is_approved: bool = True,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            role=role,
            is_verified=is_verified,
            is_active=is_active,
            is_approved=is_approved,
            profile={},
        )
        test_db.add(user)
        await test_db.commit()
        return user

    return _make


@pytest.fixture
def make_item(test_db):
    """Creates a catalog item directly in the database."""

    async def _make(
        title: str = "Dune",
        status: ItemStatus = ItemStatus.AVAILABLE,
        item_type: ItemType = ItemType.BOOK,
        is_archived: bool = False,
    ) -> LibraryItem:
        item = LibraryItem(
            title=title,
            type=item_type,
            status=status,
            is_archived=is_archived,
            details={"author": "Frank Herbert"},
        )
        test_db.add(item)
        await test_db.commit()
        return item

    return _make


@pytest.fixture
def make_loan(test_db):
    """
    Creates an open loan and marks the item BORROWED.

    days_overdue > 0 puts the due date that many days (plus an hour) in
    the past.
    """

    async def _make(user: User, item: LibraryItem, days_overdue: int = 0) -> Loan:
        now = datetime.utcnow()
        if days_overdue > 0:
            due_date = now - timedelta(days=days_overdue, hours=1)
        else:
            due_date = now + timedelta(days=14)
        loan = Loan(
            user_id=user.id,
            item_id=item.id,
            loan_date=due_date - timedelta(days=14),
            due_date=due_date,
            status=LoanStatus.BORROWED,
            renewal_count=0,
        )
        item.status = ItemStatus.BORROWED
        test_db.add(loan)
        await test_db.commit()
        return loan

    return _make


@pytest.fixture
async def student(make_user) -> User:
    return await make_user(UserRole.STUDENT, email="student@example.com", name="Sam Student")


@pytest.fixture
async def librarian(make_user) -> User:
    return await make_user(UserRole.LIBRARIAN, email="librarian@example.com", name="Lena Librarian")


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user(UserRole.ADMIN, email="admin@example.com", name="Ada Admin")


@pytest.fixture
def headers_for():
    """Returns auth_headers so tests can build headers for any user."""
    return auth_headers
