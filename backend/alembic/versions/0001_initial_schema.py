"""
Initial schema: users, catalog, loans, reservations, fines and activities.

Enum types are created with their tables and dropped on downgrade.
Overdue state is never stored; it is derived from loans.due_date.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUM_NAMES = (
    "user_role",
    "item_type",
    "item_status",
    "loan_status",
    "reservation_status",
    "fine_status",
    "activity_type",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Creates every table, index and enum type."""
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("STUDENT", "TEACHER", "LIBRARIAN", "ADMIN", name="user_role"),
            nullable=False,
        ),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("otp_code", sa.String(64), nullable=True),
        sa.Column("otp_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refresh_token_hash", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "library_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("unique_item_id", sa.String(50), nullable=False, unique=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column(
            "type",
            sa.Enum("BOOK", "DVD", "MAGAZINE", "EQUIPMENT", name="item_type"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "BORROWED", "MAINTENANCE", "LOST", name="item_status"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata", postgresql.JSONB(), nullable=False, server_default="{}"),
        *_timestamps(),
    )
    op.create_index("ix_library_items_title", "library_items", ["title"])
    op.create_index("ix_library_items_status", "library_items", ["status"])
    op.create_index("ix_library_items_type", "library_items", ["type"])

    op.create_table(
        "item_categories",
        sa.Column(
            "item_id",
            sa.Uuid(),
            sa.ForeignKey("library_items.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "category_id",
            sa.Uuid(),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "loans",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("item_id", sa.Uuid(), sa.ForeignKey("library_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("loan_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("return_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.Enum("BORROWED", "RETURNED", name="loan_status"),
            nullable=False,
        ),
        sa.Column("renewal_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_loans_user_id", "loans", ["user_id"])
    op.create_index("ix_loans_item_id", "loans", ["item_id"])
    op.create_index("ix_loans_user_status", "loans", ["user_id", "status"])
    op.create_index("ix_loans_status_due_date", "loans", ["status", "due_date"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("item_id", sa.Uuid(), sa.ForeignKey("library_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "FULFILLED", "EXPIRED", "CANCELLED", name="reservation_status"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("loan_id", sa.Uuid(), sa.ForeignKey("loans.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_item_queue", "reservations", ["item_id", "status", "created_at"])
    op.create_index("ix_reservations_status_expires", "reservations", ["status", "expires_at"])

    op.create_table(
        "fines",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("loan_id", sa.Uuid(), sa.ForeignKey("loans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False, server_default="Overdue fine"),
        sa.Column(
            "status",
            sa.Enum("PENDING", "PAID", "WAIVED", name="fine_status"),
            nullable=False,
        ),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("waived_by_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("waived_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_fines_amount_positive"),
        *_timestamps(),
    )
    op.create_index("ix_fines_user_id", "fines", ["user_id"])
    op.create_index("ix_fines_loan_status", "fines", ["loan_id", "status"])
    op.create_index("ix_fines_status", "fines", ["status"])

    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "LOAN_CREATED",
                "LOAN_RETURNED",
                "LOAN_RENEWED",
                "FINE_APPLIED",
                "FINE_PAID",
                "FINE_WAIVED",
                "FINE_REMINDER_SENT",
                "RESERVATION_PLACED",
                "RESERVATION_APPROVED",
                "RESERVATION_CANCELLED",
                "USER_ACTIVATED",
                "USER_DEACTIVATED",
                "ROLE_CHANGED",
                "PROFILE_UPDATED",
                "ITEM_ADDED",
                name="activity_type",
            ),
            nullable=False,
        ),
        sa.Column("details", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_activities_user_created", "activities", ["user_id", "created_at"])
    op.create_index("ix_activities_action", "activities", ["action"])


def downgrade() -> None:
    """Drops every table, then the enum types."""
    for table in (
        "activities",
        "fines",
        "reservations",
        "loans",
        "item_categories",
        "library_items",
        "categories",
        "users",
    ):
        op.drop_table(table)

    for name in ENUM_NAMES:
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
