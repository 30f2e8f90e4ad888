"""
Application Models

The scholarship application. Each form section is stored as its own JSON
column so a section save touches only that column. Section payloads are
kept in their camelCase wire shape.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from beacon_api.modules.shared import BaseModel

if TYPE_CHECKING:
    from beacon_api.modules.users.models import User


class PaymentStatus(str, enum.Enum):
    """Payment axis of an application."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ApprovalStatus(str, enum.Enum):
    """Admin review axis of an application, independent of payment."""

    PENDING = "pending"
    VIEWED = "viewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class Application(BaseModel):
    """
    Scholarship application, one per user.

    Valid in any partially-filled state. Completeness is only enforced when
    a payment order is created.
    """

    __tablename__ = "applications"

    # ON DELETE CASCADE: deleting a user removes their application
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Form sections
    personal_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    academic_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    sports_info: Mapped[list | None] = mapped_column(JSON, nullable=True)
    additional_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    documents: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Payment axis
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    razorpay_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    order_currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Review axis
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, name="approval_status"),
        nullable=False,
        default=ApprovalStatus.PENDING,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_applications_razorpay_order_id", "razorpay_order_id"),
        Index("ix_applications_payment_status", "payment_status"),
        Index("ix_applications_approval_status", "approval_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Application(id={self.id}, user_id={self.user_id}, "
            f"payment={self.payment_status.value}, approval={self.approval_status.value})>"
        )
