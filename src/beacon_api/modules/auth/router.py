"""
Authentication Router

Public endpoints for signup, email verification and login.

Endpoints:
- POST /auth/signup - Start signup, email a 6-digit code
- POST /auth/verify-otp - Confirm the code and create the account
- POST /auth/login - Exchange credentials for JWT tokens

Security:
- Per-email rate limits on all three endpoints
- Input validation via Pydantic schemas
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.database import get_db
from beacon_api.core.errors import ServiceError, internal_error, raise_http_error
from beacon_api.core.rate_limit import (
    LOGIN_LIMIT,
    SIGNUP_LIMIT,
    VERIFY_OTP_LIMIT,
    enforce_rate_limit,
)
from beacon_api.modules.auth import service
from beacon_api.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request Signup",
    description="""
Start a signup. A 6-digit verification code valid for 10 minutes is emailed
to the address. Repeating the request replaces the previous code.
""",
    responses={
        400: {"description": "Missing fields or email already registered"},
        429: {"description": "Too many signup requests for this email"},
    },
)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    await enforce_rate_limit("signup", service.normalize_email(data.email), SIGNUP_LIMIT)

    try:
        return await service.request_signup(db, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error during signup: {e}")
        raise internal_error() from e


@router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    summary="Verify Signup Code",
    responses={
        400: {"description": "Invalid or expired code"},
        404: {"description": "No pending registration for this email"},
        429: {"description": "Too many attempts for this email"},
    },
)
async def verify_otp(
    data: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> VerifyOtpResponse:
    """
    Verify the emailed code and create the account.

    The account is created and the pending signup removed in one
    transaction.
    """
    await enforce_rate_limit("verify_otp", service.normalize_email(data.email), VERIFY_OTP_LIMIT)

    try:
        return await service.verify_otp(db, data)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error verifying signup code: {e}")
        raise internal_error() from e


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    responses={
        401: {"description": "Invalid credentials"},
        403: {"description": "Email not verified"},
    },
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Unverified account
    """
    await enforce_rate_limit("login", service.normalize_email(credentials.email), LOGIN_LIMIT)

    try:
        return await service.login(db, credentials)
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error during login: {e}")
        raise internal_error() from e
