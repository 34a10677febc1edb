"""
Seed script with demo data.

Usage:
    python -m lms.db.seed

Creates the admin (ADMIN_EMAIL / ADMIN_PASSWORD), a librarian, patrons,
categories, items and loans, two of them overdue. Rows that already exist
are skipped, so the script can run more than once.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import get_settings
from lms.core.security import hash_password
from lms.db.session import async_session_factory
from lms.models.item import Category, LibraryItem
from lms.models.loan import Loan
from lms.models.user import User
from lms.models.enums import ItemStatus, ItemType, LoanStatus, UserRole

logger = logging.getLogger(__name__)
settings = get_settings()

DEMO_PASSWORD = "Library123"

USERS = [
    ("Lena Librarian", "librarian@library.example.com", UserRole.LIBRARIAN, {"desk": "Main"}),
    ("Sam Student", "student@library.example.com", UserRole.STUDENT, {"student_id": "S-1001"}),
    ("Tara Teacher", "teacher@library.example.com", UserRole.TEACHER, {"department": "Physics"}),
    ("Omar Overdue", "overdue@library.example.com", UserRole.STUDENT, {"student_id": "S-1002"}),
]

CATEGORIES = [
    ("Fiction", "Novels and short stories"),
    ("Science", "Natural sciences and mathematics"),
    ("Media", "Films and documentaries"),
    ("Periodicals", "Magazines and journals"),
]

# (code, title, type, categories, metadata)
ITEMS = [
    ("LIB-DEMO000001", "Dune", ItemType.BOOK, ["Fiction"],
     {"author": "Frank Herbert", "isbn": "9780441013593"}),
    ("LIB-DEMO000002", "A Brief History of Time", ItemType.BOOK, ["Science"],
     {"author": "Stephen Hawking", "isbn": "9780553380163"}),
    ("LIB-DEMO000003", "The Left Hand of Darkness", ItemType.BOOK, ["Fiction"],
     {"author": "Ursula K. Le Guin", "isbn": "9780441478125"}),
    ("LIB-DEMO000004", "Cosmos", ItemType.DVD, ["Science", "Media"],
     {"director": "Carl Sagan", "runtime_minutes": 780}),
    ("LIB-DEMO000005", "National Geographic - March", ItemType.MAGAZINE, ["Periodicals"],
     {"issue": "March", "publisher": "National Geographic"}),
    ("LIB-DEMO000006", "Graphing Calculator", ItemType.EQUIPMENT, ["Science"],
     {"serial_number": "TI84-0042"}),
]

# (borrower email, item code, days since loan)
LOANS = [
    ("overdue@library.example.com", "LIB-DEMO000001", 24),  # 10 days overdue
    ("overdue@library.example.com", "LIB-DEMO000002", 19),  # 5 days overdue
    ("student@library.example.com", "LIB-DEMO000003", 3),
]


async def _get_user(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def create_admin(db: AsyncSession) -> None:
    """
    Creates the admin when missing.

    Reads email and password from the environment (ADMIN_EMAIL, ADMIN_PASSWORD).
    """
    if await _get_user(db, settings.ADMIN_EMAIL):
        logger.info(f"Admin already exists: {settings.ADMIN_EMAIL}")
        return

    admin = User(
        name="Administrator",
        email=settings.ADMIN_EMAIL,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_verified=True,
        is_active=True,
        profile={},
    )
    db.add(admin)
    await db.commit()
    logger.info(f"Admin created: {settings.ADMIN_EMAIL} (ID: {admin.id})")


async def create_users(db: AsyncSession) -> None:
    for name, email, role, profile in USERS:
        if await _get_user(db, email):
            continue
        db.add(User(
            name=name,
            email=email,
            password_hash=hash_password(DEMO_PASSWORD),
            role=role,
            is_verified=True,
            is_active=True,
            profile=profile,
        ))
        logger.info(f"User created: {email} ({role.value})")
    await db.commit()


async def create_catalog(db: AsyncSession) -> None:
    categories: dict[str, Category] = {}
    for name, description in CATEGORIES:
        result = await db.execute(select(Category).where(Category.name == name))
        category = result.scalar_one_or_none()
        if category is None:
            category = Category(name=name, description=description)
            db.add(category)
            logger.info(f"Category created: {name}")
        categories[name] = category
    await db.commit()

    for code, title, item_type, category_names, details in ITEMS:
        result = await db.execute(
            select(LibraryItem).where(LibraryItem.unique_item_id == code)
        )
        if result.scalar_one_or_none():
            continue
        item = LibraryItem(
            unique_item_id=code,
            title=title,
            type=item_type,
            status=ItemStatus.AVAILABLE,
            details=details,
        )
        item.categories = [categories[name] for name in category_names]
        db.add(item)
        logger.info(f"Item created: {code} {title}")
    await db.commit()


async def create_loans(db: AsyncSession) -> None:
    """Open loans; the first two are already past due."""
    now = datetime.utcnow()
    for email, code, days_ago in LOANS:
        user = await _get_user(db, email)
        result = await db.execute(
            select(LibraryItem).where(LibraryItem.unique_item_id == code)
        )
        item = result.scalar_one_or_none()
        if user is None or item is None or item.status != ItemStatus.AVAILABLE:
            continue

        loan_date = now - timedelta(days=days_ago)
        db.add(Loan(
            user=user,
            item=item,
            loan_date=loan_date,
            due_date=loan_date + timedelta(days=14),
            status=LoanStatus.BORROWED,
            renewal_count=0,
        ))
        item.status = ItemStatus.BORROWED
        logger.info(f"Loan created: {code} -> {email}")
    await db.commit()


async def main() -> None:
    """Runs every seed step."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logger.info("Running seeds...")
    async with async_session_factory() as db:
        await create_admin(db)
        await create_users(db)
        await create_catalog(db)
        await create_loans(db)
    logger.info("Seeds finished!")


if __name__ == "__main__":
    asyncio.run(main())
