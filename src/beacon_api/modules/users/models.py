"""
User Models

Durable user accounts and the short-lived pending signups that precede them.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, String, Text, func
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column

from beacon_api.core.database import Base
from beacon_api.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """
    Verified user account.

    Created only by promoting a PendingUser after OTP verification (or by the
    admin seed script). Email is stored lower-cased and trimmed.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    sport: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Never serialized; responses are built from explicit schemas
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True),
        nullable=False,
        default=UserRole.USER,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"


class PendingUser(Base):
    """
    Staging record for an unverified signup.

    One row per email; a repeated signup overwrites the code and restarts
    both the code expiry and the retention window (``created_at``).
    Rows older than the retention window are purged by a background job,
    independently of ``otp_expires_at``.
    """

    __tablename__ = "pending_users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    sport: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    otp_code: Mapped[str] = mapped_column(String(6), nullable=False)
    otp_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_pending_users_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<PendingUser(email={self.email})>"
