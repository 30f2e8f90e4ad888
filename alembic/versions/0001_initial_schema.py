"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates:
1. users and pending_users (signup staging, purged by a background job)
2. applications, one per user, with a JSON column per form section
3. payments, the verified gateway transactions

Enum labels are the Python member names, which is what SQLAlchemy's Enum
type persists.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


user_role = postgresql.ENUM("USER", "ADMIN", name="user_role", create_type=False)
payment_status = postgresql.ENUM(
    "PENDING", "COMPLETED", "FAILED", name="payment_status", create_type=False
)
approval_status = postgresql.ENUM(
    "PENDING", "VIEWED", "APPROVED", "REJECTED", name="approval_status", create_type=False
)
payment_record_status = postgresql.ENUM(
    "CREATED", "PAID", "FAILED", name="payment_record_status", create_type=False
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables and enum types."""
    bind = op.get_bind()
    for enum_type in (user_role, payment_status, approval_status, payment_record_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("sport", sa.String(length=100), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "pending_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("sport", sa.String(length=100), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("otp_code", sa.String(length=6), nullable=False),
        sa.Column("otp_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_pending_users_created_at", "pending_users", ["created_at"])

    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("personal_info", postgresql.JSON(), nullable=True),
        sa.Column("academic_info", postgresql.JSON(), nullable=True),
        sa.Column("sports_info", postgresql.JSON(), nullable=True),
        sa.Column("additional_info", postgresql.JSON(), nullable=True),
        sa.Column("documents", postgresql.JSON(), nullable=True),
        sa.Column("payment_status", payment_status, nullable=False),
        sa.Column("razorpay_order_id", sa.String(length=64), nullable=True),
        sa.Column("razorpay_payment_id", sa.String(length=64), nullable=True),
        sa.Column("order_amount", sa.Integer(), nullable=True),
        sa.Column("order_currency", sa.String(length=3), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_status", approval_status, nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(
        "ix_applications_razorpay_order_id", "applications", ["razorpay_order_id"]
    )
    op.create_index("ix_applications_payment_status", "applications", ["payment_status"])
    op.create_index("ix_applications_approval_status", "applications", ["approval_status"])

    op.create_table(
        "payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("razorpay_order_id", sa.String(length=64), nullable=False),
        sa.Column("razorpay_payment_id", sa.String(length=64), nullable=True),
        sa.Column("razorpay_signature", sa.Text(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", payment_record_status, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("razorpay_payment_id", name="uq_payments_razorpay_payment_id"),
    )
    op.create_index("ix_payments_user_id", "payments", ["user_id"])
    op.create_index("ix_payments_application_id", "payments", ["application_id"])
    op.create_index("ix_payments_status", "payments", ["status"])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table("payments")
    op.drop_table("applications")
    op.drop_table("pending_users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (payment_record_status, approval_status, payment_status, user_role):
        enum_type.drop(bind, checkfirst=True)
