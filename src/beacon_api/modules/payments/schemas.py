"""
Payment Schemas
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from beacon_api.modules.payments.models import PaymentRecordStatus
from beacon_api.modules.shared.schemas import CamelModel


class PaymentVerifyRequest(BaseModel):
    """Checkout callback values, in the gateway's own field names."""

    razorpay_payment_id: str = Field(..., min_length=1, max_length=64)
    razorpay_order_id: str = Field(..., min_length=1, max_length=64)
    razorpay_signature: str = Field(..., min_length=1, max_length=256)


class PaymentVerifyResponse(BaseModel):
    success: bool
    message: str


class PaymentResponse(CamelModel):
    id: UUID
    user_id: UUID
    application_id: UUID
    razorpay_order_id: str
    razorpay_payment_id: str | None = None
    amount: int
    currency: str
    status: PaymentRecordStatus
    created_at: datetime | None = None
