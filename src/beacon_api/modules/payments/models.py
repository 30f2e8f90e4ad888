"""
Payment Models

Immutable audit records of gateway transactions. A record is written only
after the checkout signature has been verified.
"""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from beacon_api.modules.shared import BaseModel

if TYPE_CHECKING:
    from beacon_api.modules.users.models import User


class PaymentRecordStatus(str, enum.Enum):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"


class Payment(BaseModel):
    """One gateway transaction attempt. An application may accumulate several."""

    __tablename__ = "payments"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    razorpay_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    razorpay_payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    razorpay_signature: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Minor currency units
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    status: Mapped[PaymentRecordStatus] = mapped_column(
        Enum(PaymentRecordStatus, name="payment_record_status"),
        nullable=False,
        default=PaymentRecordStatus.CREATED,
    )

    user: Mapped["User"] = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_payments_user_id", "user_id"),
        Index("ix_payments_application_id", "application_id"),
        Index("ix_payments_status", "status"),
        UniqueConstraint("razorpay_payment_id", name="uq_payments_razorpay_payment_id"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, order={self.razorpay_order_id}, status={self.status.value})>"
