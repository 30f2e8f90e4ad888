"""
Payments Repository

Database operations for payment records.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.modules.applications import repository as applications_repository
from beacon_api.modules.applications.models import Application
from beacon_api.modules.payments.models import Payment, PaymentRecordStatus


async def record_verified_payment(
    db: AsyncSession,
    application: Application,
    *,
    order_id: str,
    payment_id: str,
    signature: str,
    amount: int,
    currency: str,
) -> Payment:
    """
    Mark the application paid and append a ``paid`` Payment, in one commit.

    Raises:
        InvalidStatusTransitionError: If the application is not pending payment
    """
    applications_repository.apply_payment_completed(application, payment_id)

    payment = Payment(
        user_id=application.user_id,
        application_id=application.id,
        razorpay_order_id=order_id,
        razorpay_payment_id=payment_id,
        razorpay_signature=signature,
        amount=amount,
        currency=currency,
        status=PaymentRecordStatus.PAID,
    )
    db.add(payment)

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(payment)
    return payment


async def list_by_user(db: AsyncSession, user_id: UUID) -> list[Payment]:
    """A user's payments, newest first."""
    result = await db.execute(
        select(Payment).where(Payment.user_id == user_id).order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def list_payments(
    db: AsyncSession,
    *,
    status: PaymentRecordStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Payment], int]:
    """All payments newest first, optionally filtered by status."""
    conditions = [Payment.status == status] if status else []

    count_result = await db.execute(select(func.count(Payment.id)).where(*conditions))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Payment)
        .where(*conditions)
        .order_by(Payment.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def payment_stats(db: AsyncSession) -> dict[str, int]:
    """Count, paid/failed counts and paid revenue in minor units."""
    result = await db.execute(
        select(
            func.count(Payment.id),
            func.count(Payment.id).filter(Payment.status == PaymentRecordStatus.PAID),
            func.count(Payment.id).filter(Payment.status == PaymentRecordStatus.FAILED),
            func.coalesce(
                func.sum(Payment.amount).filter(Payment.status == PaymentRecordStatus.PAID), 0
            ),
        )
    )
    count, paid_count, failed_count, revenue = result.one()
    return {
        "count": count or 0,
        "paid_count": paid_count or 0,
        "failed_count": failed_count or 0,
        "revenue_minor": int(revenue or 0),
    }
