"""
Applications Router

Authenticated endpoints for the applicant's own application.

Endpoints:
- GET /user/application/save-section - Load the caller's application
- POST /user/application/save-section - Save one section
- POST /register - Create the registration fee order
- GET /user/dashboard - Application, payments and account

Every endpoint acts only on the application owned by the token's user.
Tokens from the env-configured admin login own no account and get 401.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.auth import CurrentUser, get_current_account_user
from beacon_api.core.database import get_db
from beacon_api.core.errors import ServiceError, internal_error, raise_http_error
from beacon_api.modules.applications import service
from beacon_api.modules.applications.schemas import (
    ApplicationResponse,
    DashboardResponse,
    RegisterRequest,
    RegisterResponse,
    SaveSectionRequest,
    SaveSectionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/user/application/save-section",
    response_model=ApplicationResponse | dict[str, Any],
    summary="Load Application",
    description="Returns the caller's application, or `{}` if nothing has been saved yet.",
    responses={401: {"description": "Not authenticated"}},
)
async def load_application(
    user: CurrentUser = Depends(get_current_account_user),
    db: AsyncSession = Depends(get_db),
) -> ApplicationResponse | dict[str, Any]:
    try:
        application = await service.load_application(db, user.id)
    except Exception as e:
        logger.exception(f"Error loading application for user {user.id}: {e}")
        raise internal_error() from e

    return application if application is not None else {}


@router.post(
    "/user/application/save-section",
    response_model=SaveSectionResponse,
    summary="Save Application Section",
    description="""
Save one section of the caller's application. Partial data is accepted.

Sections: `personalInfo`, `academicInfo`, `sportsInfo` (list of entries),
`additionalInfo`, `documents`.

Identity and audit fields (`_id`, `userId`, `__v`, `createdAt`, `updatedAt`)
are ignored. Other sections and the payment/approval status are unchanged.
""",
    responses={
        400: {"description": "Unknown section or uncoercible value (e.g. invalid dob)"},
        401: {"description": "Not authenticated"},
    },
)
async def save_section(
    data: SaveSectionRequest,
    user: CurrentUser = Depends(get_current_account_user),
    db: AsyncSession = Depends(get_db),
) -> SaveSectionResponse:
    try:
        application = await service.save_section(db, user.id, data.section, data.data)
        return SaveSectionResponse(application=application)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error saving section {data.section} for user {user.id}: {e}")
        raise internal_error() from e


@router.post(
    "/register",
    response_model=RegisterResponse,
    summary="Create Registration Order",
    description="""
Create the payment gateway order for the registration fee.

Any sections in the body are saved first. The application must then be
complete; otherwise 400 `APPLICATION_INCOMPLETE` is returned with a
per-section `missingFields` count.

The response carries the public gateway key for checkout, never the secret.
""",
    responses={
        400: {"description": "Application incomplete or invalid section data"},
        401: {"description": "Not authenticated"},
        409: {"description": "Registration fee already paid"},
        502: {"description": "Payment gateway unavailable"},
    },
)
async def register(
    data: RegisterRequest,
    user: CurrentUser = Depends(get_current_account_user),
    db: AsyncSession = Depends(get_db),
) -> RegisterResponse:
    try:
        return await service.create_registration_order(db, user, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error creating registration order for user {user.id}: {e}")
        raise internal_error() from e


@router.get(
    "/user/dashboard",
    response_model=DashboardResponse,
    summary="User Dashboard",
    responses={401: {"description": "Not authenticated"}},
)
async def dashboard(
    user: CurrentUser = Depends(get_current_account_user),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    try:
        return await service.get_dashboard(db, user)
    except Exception as e:
        logger.exception(f"Error loading dashboard for user {user.id}: {e}")
        raise internal_error() from e
