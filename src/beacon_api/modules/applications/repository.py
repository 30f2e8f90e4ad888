"""
Applications Repository

Database operations for scholarship applications.

Design Principles:
- Section saves are single-statement upserts keyed by user id, touching only
  the columns being saved (last write wins per section)
- Status changes go through explicit transition tables
- Single responsibility - only database operations, no business logic
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.modules.applications.models import Application, ApprovalStatus, PaymentStatus
from beacon_api.modules.users.models import User

# Payment never returns to pending; completed and failed are terminal
VALID_PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: set(),
    PaymentStatus.FAILED: set(),
}

# Review never returns to pending; a decision may be revised by an admin
VALID_APPROVAL_TRANSITIONS: dict[ApprovalStatus, set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {
        ApprovalStatus.VIEWED,
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    },
    ApprovalStatus.VIEWED: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
    ApprovalStatus.APPROVED: {ApprovalStatus.REJECTED},
    ApprovalStatus.REJECTED: {ApprovalStatus.APPROVED},
}


class InvalidStatusTransitionError(ValueError):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, current_status, new_status, valid_transitions):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def check_payment_transition(current: PaymentStatus, new: PaymentStatus) -> None:
    valid = VALID_PAYMENT_TRANSITIONS.get(current, set())
    if new not in valid:
        raise InvalidStatusTransitionError(current, new, valid)


def check_approval_transition(current: ApprovalStatus, new: ApprovalStatus) -> None:
    valid = VALID_APPROVAL_TRANSITIONS.get(current, set())
    if new != current and new not in valid:
        raise InvalidStatusTransitionError(current, new, valid)


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    """Get application by ID."""
    return await db.get(Application, id)


async def get_by_user(db: AsyncSession, user_id: UUID) -> Application | None:
    """Get the application owned by a user."""
    result = await db.execute(select(Application).where(Application.user_id == user_id))
    return result.scalar_one_or_none()


async def get_by_order_id(
    db: AsyncSession,
    order_id: str,
    *,
    for_update: bool = False,
) -> Application | None:
    """
    Get the application whose latest gateway order is ``order_id``.

    With ``for_update`` the row stays locked until the caller commits or
    rolls back, and the returned object reflects the row as committed by
    whichever transaction held the lock before.
    """
    stmt = select(Application).where(Application.razorpay_order_id == order_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def upsert_sections(
    db: AsyncSession,
    user_id: UUID,
    columns: dict[str, Any],
) -> Application:
    """
    Create the user's application or overwrite the given section columns.

    Only the columns in ``columns`` are written; every other section and
    both status fields keep their stored values.

    Args:
        db: Database session
        user_id: Owner of the application
        columns: Mapping of Application column name to stored section value

    Returns:
        The refreshed Application
    """
    stmt = insert(Application).values(user_id=user_id, **columns)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Application.user_id],
        set_={**columns, "updated_at": func.now()},
    )
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(
        select(Application)
        .where(Application.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def set_order(
    db: AsyncSession,
    application: Application,
    order_id: str,
    amount: int,
    currency: str,
) -> Application:
    """Store the gateway order created for this application. Replaces any previous order."""
    application.razorpay_order_id = order_id
    application.order_amount = amount
    application.order_currency = currency

    await db.commit()
    await db.refresh(application)
    return application


def apply_payment_completed(application: Application, payment_id: str) -> None:
    """
    Move an application to completed without committing.

    The caller commits together with the Payment record.

    Raises:
        InvalidStatusTransitionError: If the application is not pending
    """
    check_payment_transition(application.payment_status, PaymentStatus.COMPLETED)
    application.payment_status = PaymentStatus.COMPLETED
    application.razorpay_payment_id = payment_id
    application.paid_at = datetime.now(UTC)


async def update_approval_status(
    db: AsyncSession,
    application: Application,
    status: ApprovalStatus,
) -> Application:
    """
    Set the approval status, validating the transition.

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
    """
    check_approval_transition(application.approval_status, status)

    if status != application.approval_status:
        application.approval_status = status
        application.reviewed_at = datetime.now(UTC)
        await db.commit()
        await db.refresh(application)

    return application


# ============================================
# Admin queries
# ============================================


async def list_applications(
    db: AsyncSession,
    *,
    payment_status: PaymentStatus | None = None,
    approval_status: ApprovalStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Application], int]:
    """
    List applications newest first with optional filters.

    ``search`` matches the applicant's account name or email.

    Returns:
        Tuple of (applications page, total matching count)
    """
    conditions = []
    if payment_status:
        conditions.append(Application.payment_status == payment_status)
    if approval_status:
        conditions.append(Application.approval_status == approval_status)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    base = select(Application).join(User, Application.user_id == User.id).where(*conditions)

    count_result = await db.execute(select(func.count()).select_from(base.subquery()))
    total = count_result.scalar() or 0

    result = await db.execute(
        base.order_by(Application.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def count_stats(db: AsyncSession) -> dict[str, int]:
    """Totals for the admin dashboard: total, paid, pending payment, approved."""
    result = await db.execute(
        select(
            func.count(Application.id),
            func.count(Application.id).filter(
                Application.payment_status == PaymentStatus.COMPLETED
            ),
            func.count(Application.id).filter(Application.payment_status == PaymentStatus.PENDING),
            func.count(Application.id).filter(
                Application.approval_status == ApprovalStatus.APPROVED
            ),
        )
    )
    total, paid, pending, approved = result.one()
    return {
        "total": total or 0,
        "paid": paid or 0,
        "pending_payments": pending or 0,
        "approved": approved or 0,
    }


async def created_at_since(db: AsyncSession, since: datetime) -> list[datetime]:
    """Creation timestamps of applications created at or after ``since``."""
    result = await db.execute(
        select(Application.created_at).where(Application.created_at >= since)
    )
    return list(result.scalars().all())
