"""
Payments Service Layer

Verification of the signed checkout callback.

Flow:
1. Recompute HMAC-SHA256 over "{order_id}|{payment_id}" and compare in
   constant time. Mismatch: reject, nothing is written.
2. Find the application by its stored order id.
3. Mark it completed, record the payment id and append a ``paid`` Payment,
   all in one commit.
4. Send a receipt email (failure logged only).

Replaying a callback that was already applied is a no-op success, so a
client retry after a dropped response does not create a second record.
The application row is locked for the duration of the verify transaction,
and payments.razorpay_payment_id is unique, so concurrent callbacks for the
same payment also apply it only once.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.config import settings
from beacon_api.core.email import send_payment_receipt
from beacon_api.core.errors import NotFoundError, ServiceError
from beacon_api.core.payment_gateway import verify_payment_signature
from beacon_api.modules.applications import repository as applications_repository
from beacon_api.modules.applications.models import Application, PaymentStatus
from beacon_api.modules.applications.repository import InvalidStatusTransitionError
from beacon_api.modules.payments import repository
from beacon_api.modules.payments.schemas import PaymentVerifyRequest, PaymentVerifyResponse
from beacon_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Payment verified successfully"


class InvalidSignatureError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid payment signature",
            error_code="INVALID_SIGNATURE",
            status_code=400,
        )


class OrderNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__(
            message="No application found for this order",
            error_code="ORDER_NOT_FOUND",
        )


class PaymentStateConflictError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="PAYMENT_STATE_CONFLICT", status_code=409)


async def _send_receipt(db: AsyncSession, application: Application, amount: int, currency: str):
    user = await UserRepository.get_by_id(db, application.user_id)
    if user is None:
        return

    sent = await send_payment_receipt(
        to_email=user.email,
        name=user.name,
        payment_id=application.razorpay_payment_id or "",
        order_id=application.razorpay_order_id or "",
        amount=amount,
        currency=currency,
    )
    if not sent:
        logger.error(f"Failed to send payment receipt for application {application.id}")


async def verify_payment(db: AsyncSession, data: PaymentVerifyRequest) -> PaymentVerifyResponse:
    """
    Verify a checkout callback and apply it.

    Raises:
        InvalidSignatureError: Signature does not match
        OrderNotFoundError: No application holds this order id
        PaymentStateConflictError: Application already settled by another payment
    """
    if not verify_payment_signature(
        data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
    ):
        logger.warning(f"Invalid payment signature for order {data.razorpay_order_id}")
        raise InvalidSignatureError()

    # Row lock serializes concurrent callbacks for the same order
    application = await applications_repository.get_by_order_id(
        db, data.razorpay_order_id, for_update=True
    )
    if application is None:
        logger.warning(f"Verified payment for unknown order {data.razorpay_order_id}")
        raise OrderNotFoundError()

    if (
        application.payment_status == PaymentStatus.COMPLETED
        and application.razorpay_payment_id == data.razorpay_payment_id
    ):
        logger.info(f"Payment {data.razorpay_payment_id} already applied, skipping")
        return PaymentVerifyResponse(success=True, message=SUCCESS_MESSAGE)

    amount = application.order_amount or settings.registration_fee_amount
    currency = application.order_currency or settings.registration_fee_currency

    try:
        await repository.record_verified_payment(
            db,
            application,
            order_id=data.razorpay_order_id,
            payment_id=data.razorpay_payment_id,
            signature=data.razorpay_signature,
            amount=amount,
            currency=currency,
        )
    except InvalidStatusTransitionError as e:
        logger.warning(f"Payment rejected for application {application.id}: {e}")
        raise PaymentStateConflictError(
            f"Application payment is already {application.payment_status.value}"
        ) from e
    except IntegrityError:
        # razorpay_payment_id is unique: another request already recorded it
        logger.info(f"Payment {data.razorpay_payment_id} recorded concurrently, skipping")
        return PaymentVerifyResponse(success=True, message=SUCCESS_MESSAGE)

    logger.info(
        f"Payment verified: application={application.id}, order={data.razorpay_order_id}"
    )

    await _send_receipt(db, application, amount, currency)

    return PaymentVerifyResponse(success=True, message=SUCCESS_MESSAGE)
