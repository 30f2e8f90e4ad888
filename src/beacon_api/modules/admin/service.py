"""
Admin Service Layer

Back-office reads and mutations over users, applications and payments.
Callers are already authorized as admins by the router.
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.auth import CurrentUser
from beacon_api.core.email import send_application_decision
from beacon_api.core.errors import NotFoundError, ServiceError
from beacon_api.modules.admin.schemas import (
    AdminApplicationItem,
    AdminApplicationListResponse,
    AdminPaymentItem,
    AdminPaymentListResponse,
    AdminStatsResponse,
    AdminUserListResponse,
    ApplicationCounts,
    ApplicationStats,
    ChartPoint,
    PaymentStats,
    UserCounts,
    UserStats,
    UserSummary,
    UserUpdateRequest,
)
from beacon_api.modules.applications import repository as applications_repository
from beacon_api.modules.applications.models import Application, ApprovalStatus, PaymentStatus
from beacon_api.modules.applications.repository import InvalidStatusTransitionError
from beacon_api.modules.applications.service import to_response
from beacon_api.modules.auth.schemas import UserResponse
from beacon_api.modules.payments import repository as payments_repository
from beacon_api.modules.payments.models import PaymentRecordStatus
from beacon_api.modules.users.models import UserRole
from beacon_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

RECENT_USER_DAYS = 7
CHART_MONTHS = 6


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: UUID):
        super().__init__(
            message=f"Application {application_id} not found",
            error_code="APPLICATION_NOT_FOUND",
        )


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: UUID):
        super().__init__(message=f"User {user_id} not found", error_code="USER_NOT_FOUND")


class InvalidApprovalTransitionError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message=message, error_code="INVALID_STATUS_TRANSITION", status_code=409)


class CannotModifySelfError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Admins cannot delete or demote their own account.",
            error_code="CANNOT_MODIFY_SELF",
            status_code=400,
        )


def _admin_item(application: Application) -> AdminApplicationItem:
    item = AdminApplicationItem.model_validate(to_response(application).model_dump())
    if application.user is not None:
        item.applicant = UserSummary.model_validate(application.user)
    return item


# ============================================
# Applications
# ============================================


async def list_applications(
    db: AsyncSession,
    *,
    payment_status: PaymentStatus | None = None,
    approval_status: ApprovalStatus | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> AdminApplicationListResponse:
    """Paginated applications with applicant summary and overall stats."""
    applications, total = await applications_repository.list_applications(
        db,
        payment_status=payment_status,
        approval_status=approval_status,
        search=search,
        skip=skip,
        limit=limit,
    )
    stats = await applications_repository.count_stats(db)

    return AdminApplicationListResponse(
        applications=[_admin_item(a) for a in applications],
        total=total,
        skip=skip,
        limit=limit,
        stats=ApplicationStats(**stats),
    )


async def get_application(
    db: AsyncSession,
    application_id: UUID,
    admin: CurrentUser,
) -> AdminApplicationItem:
    """
    Application detail. The first admin view moves ``pending`` to ``viewed``.

    Raises:
        ApplicationNotFoundError: No such application
    """
    application = await applications_repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError(application_id)

    if application.approval_status == ApprovalStatus.PENDING:
        application = await applications_repository.update_approval_status(
            db, application, ApprovalStatus.VIEWED
        )
        logger.info(f"Admin {admin.id} viewed application {application_id}")

    return _admin_item(application)


async def update_approval_status(
    db: AsyncSession,
    application_id: UUID,
    status: ApprovalStatus,
    admin: CurrentUser,
) -> AdminApplicationItem:
    """
    Set an application's approval status and notify the applicant of decisions.

    Raises:
        ApplicationNotFoundError: No such application
        InvalidApprovalTransitionError: Transition not allowed (e.g. back to pending)
    """
    application = await applications_repository.get_by_id(db, application_id)
    if application is None:
        raise ApplicationNotFoundError(application_id)

    previous = application.approval_status
    try:
        application = await applications_repository.update_approval_status(db, application, status)
    except InvalidStatusTransitionError as e:
        raise InvalidApprovalTransitionError(str(e)) from e

    logger.info(
        f"Admin {admin.id} set application {application_id} approval "
        f"{previous.value} -> {status.value}"
    )

    if previous != status and status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
        user = application.user
        if user is not None:
            sent = await send_application_decision(
                to_email=user.email,
                name=user.name,
                approved=status == ApprovalStatus.APPROVED,
            )
            if not sent:
                logger.error(f"Failed to send decision email for application {application_id}")

    return _admin_item(application)


# ============================================
# Users
# ============================================


async def _user_stats(db: AsyncSession) -> tuple[dict[UserRole, int], int]:
    by_role = await UserRepository.count_by_role(db)
    recent = await UserRepository.count_created_since(
        db, datetime.now(UTC) - timedelta(days=RECENT_USER_DAYS)
    )
    return by_role, recent


async def list_users(
    db: AsyncSession,
    *,
    role: UserRole | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> AdminUserListResponse:
    """Paginated users with role counts and recent signups."""
    users, total = await UserRepository.list_users(
        db, role=role, search=search, skip=skip, limit=limit
    )
    by_role, recent = await _user_stats(db)

    return AdminUserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        skip=skip,
        limit=limit,
        stats=UserStats(
            total=sum(by_role.values()),
            admins=by_role[UserRole.ADMIN],
            regular_users=by_role[UserRole.USER],
            recent_users=recent,
        ),
    )


async def update_user(
    db: AsyncSession,
    user_id: UUID,
    data: UserUpdateRequest,
    admin: CurrentUser,
) -> UserResponse:
    """
    Update a user's role, name or verified flag.

    Raises:
        UserNotFoundError: No such user
        CannotModifySelfError: An admin tried to demote themselves
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    if user.id == admin.id and data.role is not None and data.role != UserRole.ADMIN:
        raise CannotModifySelfError()

    fields = data.model_dump(exclude_none=True)
    user = await UserRepository.update(db, user, **fields)
    logger.info(f"Admin {admin.id} updated user {user_id}: {sorted(fields)}")

    return UserResponse.model_validate(user)


async def delete_user(db: AsyncSession, user_id: UUID, admin: CurrentUser) -> None:
    """
    Delete a user together with their application and payments.

    Raises:
        UserNotFoundError: No such user
        CannotModifySelfError: An admin tried to delete themselves
    """
    if user_id == admin.id:
        raise CannotModifySelfError()

    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    await UserRepository.delete(db, user)
    logger.info(f"Admin {admin.id} deleted user {user_id}")


# ============================================
# Payments
# ============================================


async def list_payments(
    db: AsyncSession,
    *,
    status: PaymentRecordStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> AdminPaymentListResponse:
    """Paginated payments with payer summary and revenue stats."""
    payments, total = await payments_repository.list_payments(
        db, status=status, skip=skip, limit=limit
    )
    stats = await payments_repository.payment_stats(db)

    items = []
    for payment in payments:
        item = AdminPaymentItem.model_validate(payment)
        if payment.user is not None:
            item.payer = UserSummary.model_validate(payment.user)
        items.append(item)

    return AdminPaymentListResponse(
        payments=items,
        total=total,
        skip=skip,
        limit=limit,
        stats=PaymentStats(
            total_revenue=stats["revenue_minor"] / 100,
            count=stats["count"],
            paid_count=stats["paid_count"],
            failed_count=stats["failed_count"],
        ),
    )


# ============================================
# Dashboard
# ============================================


def last_months(now: datetime, count: int = CHART_MONTHS) -> list[tuple[int, int]]:
    """(year, month) pairs for the ``count`` months ending with ``now``'s month, oldest first."""
    months = []
    year, month = now.year, now.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def bucket_by_month(
    timestamps: list[datetime], months: list[tuple[int, int]]
) -> dict[tuple[int, int], int]:
    counts = {key: 0 for key in months}
    for ts in timestamps:
        key = (ts.year, ts.month)
        if key in counts:
            counts[key] += 1
    return counts


async def get_stats(db: AsyncSession, now: datetime | None = None) -> AdminStatsResponse:
    """User and application totals plus per-month signups and applications."""
    now = now or datetime.now(UTC)
    months = last_months(now)
    since = datetime(months[0][0], months[0][1], 1, tzinfo=UTC)

    by_role = await UserRepository.count_by_role(db)
    app_stats = await applications_repository.count_stats(db)

    user_buckets = bucket_by_month(await UserRepository.created_at_since(db, since), months)
    app_buckets = bucket_by_month(
        await applications_repository.created_at_since(db, since), months
    )

    return AdminStatsResponse(
        users=UserCounts(
            total=sum(by_role.values()),
            admins=by_role[UserRole.ADMIN],
            regular_users=by_role[UserRole.USER],
        ),
        applications=ApplicationCounts(
            total=app_stats["total"],
            paid=app_stats["paid"],
            pending=app_stats["pending_payments"],
            approved=app_stats["approved"],
        ),
        chart_data=[
            ChartPoint(
                month=f"{year:04d}-{month:02d}",
                users=user_buckets[(year, month)],
                applications=app_buckets[(year, month)],
            )
            for year, month in months
        ],
    )
