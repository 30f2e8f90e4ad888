"""
Admin Router

Back-office endpoints over users, applications and payments.
All endpoints require a valid JWT with the ``admin`` role; anything else
gets 401.

Endpoints:
- GET /admin/applications - List applications with filters, pagination and stats
- GET /admin/applications/{id} - Application detail (marks pending as viewed)
- PATCH /admin/applications/{id} - Set approval status
- GET /admin/users - List users with stats
- PATCH /admin/users/{id} - Update role, name or verified flag
- DELETE /admin/users/{id} - Delete a user (application and payments cascade)
- GET /admin/payments - List payments with revenue stats
- GET /admin/stats - Dashboard totals and six-month chart
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.auth import CurrentUser, get_current_admin_user
from beacon_api.core.database import get_db
from beacon_api.core.errors import ServiceError, internal_error, raise_http_error
from beacon_api.modules.admin import service
from beacon_api.modules.admin.schemas import (
    AdminApplicationItem,
    AdminApplicationListResponse,
    AdminPaymentListResponse,
    AdminStatsResponse,
    AdminUserListResponse,
    ApprovalUpdateRequest,
    UserUpdateRequest,
)
from beacon_api.modules.applications.models import ApprovalStatus, PaymentStatus
from beacon_api.modules.auth.schemas import UserResponse
from beacon_api.modules.payments.models import PaymentRecordStatus
from beacon_api.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_admin_user)])

UNAUTHORIZED_RESPONSE = {401: {"description": "Missing or invalid token, or not an admin"}}


def _unexpected(action: str, e: Exception) -> HTTPException:
    logger.exception(f"Error {action}: {e}")
    return internal_error()


# ============================================
# Applications
# ============================================


@router.get(
    "/applications",
    response_model=AdminApplicationListResponse,
    summary="List Applications",
    description="""
Paginated applications, newest first, with the applicant's name and email.

**Filters:**
- `payment_status`: pending, completed, failed
- `approval_status`: pending, viewed, approved, rejected
- `search`: matches applicant name or email
""",
    responses=UNAUTHORIZED_RESPONSE,
)
async def list_applications(
    payment_status: PaymentStatus | None = Query(None),
    approval_status: ApprovalStatus | None = Query(None),
    search: str | None = Query(None, min_length=1, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> AdminApplicationListResponse:
    try:
        return await service.list_applications(
            db,
            payment_status=payment_status,
            approval_status=approval_status,
            search=search,
            skip=skip,
            limit=limit,
        )
    except Exception as e:
        raise _unexpected("listing applications", e) from e


@router.get(
    "/applications/{application_id}",
    response_model=AdminApplicationItem,
    summary="Get Application",
    responses={**UNAUTHORIZED_RESPONSE, 404: {"description": "Application not found"}},
)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdminApplicationItem:
    try:
        return await service.get_application(db, application_id, admin)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        raise _unexpected(f"loading application {application_id}", e) from e


@router.patch(
    "/applications/{application_id}",
    response_model=AdminApplicationItem,
    summary="Update Approval Status",
    responses={
        **UNAUTHORIZED_RESPONSE,
        404: {"description": "Application not found"},
        409: {"description": "Transition not allowed"},
    },
)
async def update_application(
    application_id: UUID,
    data: ApprovalUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> AdminApplicationItem:
    try:
        return await service.update_approval_status(
            db, application_id, data.approval_status, admin
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        raise _unexpected(f"updating application {application_id}", e) from e


# ============================================
# Users
# ============================================


@router.get(
    "/users",
    response_model=AdminUserListResponse,
    summary="List Users",
    responses=UNAUTHORIZED_RESPONSE,
)
async def list_users(
    role: UserRole | None = Query(None),
    search: str | None = Query(None, min_length=1, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> AdminUserListResponse:
    try:
        return await service.list_users(db, role=role, search=search, skip=skip, limit=limit)
    except Exception as e:
        raise _unexpected("listing users", e) from e


@router.patch(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Update User",
    responses={**UNAUTHORIZED_RESPONSE, 404: {"description": "User not found"}},
)
async def update_user(
    user_id: UUID,
    data: UserUpdateRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> UserResponse:
    try:
        return await service.update_user(db, user_id, data, admin)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        raise _unexpected(f"updating user {user_id}", e) from e


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete User",
    responses={**UNAUTHORIZED_RESPONSE, 404: {"description": "User not found"}},
)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> None:
    try:
        await service.delete_user(db, user_id, admin)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        raise _unexpected(f"deleting user {user_id}", e) from e


# ============================================
# Payments & Stats
# ============================================


@router.get(
    "/payments",
    response_model=AdminPaymentListResponse,
    summary="List Payments",
    responses=UNAUTHORIZED_RESPONSE,
)
async def list_payments(
    payment_status: PaymentRecordStatus | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> AdminPaymentListResponse:
    try:
        return await service.list_payments(db, status=payment_status, skip=skip, limit=limit)
    except Exception as e:
        raise _unexpected("listing payments", e) from e


@router.get(
    "/stats",
    response_model=AdminStatsResponse,
    summary="Dashboard Statistics",
    responses=UNAUTHORIZED_RESPONSE,
)
async def get_stats(db: AsyncSession = Depends(get_db)) -> AdminStatsResponse:
    try:
        return await service.get_stats(db)
    except Exception as e:
        raise _unexpected("loading admin stats", e) from e
