"""
Authentication Service Layer

Business logic for email-OTP signup and credentials login.

This module implements:
1. Request signup:
   - Reject emails that already belong to a user
   - Hash the password (bcrypt) and generate a 6-digit code valid for 10 minutes
   - Upsert the PendingUser keyed by normalized email
   - Email the code; a delivery failure is logged, not raised

2. Verify code:
   - Lookup, then code match, then expiry, each with a distinct error
   - Promote PendingUser to User in a single transaction

3. Login:
   - Env-configured admin credentials are checked first (constant-time)
   - Regular users must be verified

Security considerations:
- Codes come from the ``secrets`` module
- Codes, passwords and tokens are never logged
- A missing pending record and a purged one report the same message
"""

import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.auth import ENV_ADMIN_ID
from beacon_api.core.config import settings
from beacon_api.core.email import send_otp_email
from beacon_api.core.errors import ServiceError
from beacon_api.core.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from beacon_api.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    UserResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from beacon_api.modules.users.models import UserRole
from beacon_api.modules.users.repository import PendingUserRepository, UserRepository

logger = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_RANGE = 900000


class EmailAlreadyRegisteredError(ServiceError):
    def __init__(self):
        super().__init__(
            message="User already exists with this email",
            error_code="EMAIL_ALREADY_REGISTERED",
            status_code=400,
        )


class PendingSignupNotFoundError(ServiceError):
    """No pending record: never signed up, or already purged by retention."""

    def __init__(self):
        super().__init__(
            message="No pending registration found or code expired. Please sign up again.",
            error_code="PENDING_NOT_FOUND",
            status_code=404,
        )


class InvalidOtpError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid verification code",
            error_code="INVALID_OTP",
            status_code=400,
        )


class OtpExpiredError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Verification code expired. Please sign up again.",
            error_code="OTP_EXPIRED",
            status_code=400,
        )


class InvalidCredentialsError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Invalid email or password.",
            error_code="INVALID_CREDENTIALS",
            status_code=401,
        )


class EmailNotVerifiedError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Please verify your email first",
            error_code="EMAIL_NOT_VERIFIED",
            status_code=403,
        )


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address."""
    return email.strip().lower()


def generate_otp() -> str:
    """Uniformly random 6-digit code in 100000-999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_RANGE))


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


async def request_signup(db: AsyncSession, data: SignupRequest) -> SignupResponse:
    """
    Start a signup by storing a pending record and emailing a code.

    Raises:
        EmailAlreadyRegisteredError: If a user already owns the email
    """
    email = normalize_email(data.email)

    if await UserRepository.email_exists(db, email):
        logger.warning(f"Signup rejected, email already registered: {email}")
        raise EmailAlreadyRegisteredError()

    otp_code = generate_otp()
    otp_expires_at = datetime.now(UTC) + timedelta(minutes=settings.otp_expiry_minutes)

    await PendingUserRepository.upsert(
        db,
        name=data.name,
        email=email,
        password_hash=hash_password(data.password),
        otp_code=otp_code,
        otp_expires_at=otp_expires_at,
        sport=data.sport,
    )
    logger.info(f"Pending signup stored for {email}")

    email_sent = await send_otp_email(to_email=email, name=data.name, otp_code=otp_code)
    if not email_sent:
        logger.error(f"Failed to send verification code to {email}; pending record kept")

    return SignupResponse(email=email)


async def verify_otp(db: AsyncSession, data: VerifyOtpRequest) -> VerifyOtpResponse:
    """
    Verify a signup code and create the durable user.

    Checks run in order: record lookup, code match, expiry. An expired
    record that has not been purged yet still reports expiry.

    Raises:
        PendingSignupNotFoundError: No pending record for the email
        InvalidOtpError: Code does not match
        OtpExpiredError: Code matched but is past its expiry
    """
    email = normalize_email(data.email)

    pending = await PendingUserRepository.get_by_email(db, email)
    if pending is None:
        raise PendingSignupNotFoundError()

    if not hmac.compare_digest(pending.otp_code.encode(), data.otp.encode()):
        logger.warning(f"Invalid verification code submitted for {email}")
        raise InvalidOtpError()

    if _as_aware(pending.otp_expires_at) < datetime.now(UTC):
        logger.warning(f"Expired verification code submitted for {email}")
        raise OtpExpiredError()

    await PendingUserRepository.promote(db, pending)

    return VerifyOtpResponse()


def _issue_tokens(user_response: UserResponse) -> LoginResponse:
    claims = {
        "email": user_response.email,
        "role": user_response.role.value,
        "name": user_response.name,
    }
    subject = str(user_response.id)
    return LoginResponse(
        access_token=create_access_token(subject=subject, additional_claims=claims),
        refresh_token=create_refresh_token(subject=subject),
        user=user_response,
    )


def _matches_env_admin(email: str, password: str) -> bool:
    if not settings.admin_email or not settings.admin_password:
        return False
    email_ok = hmac.compare_digest(email.encode(), normalize_email(settings.admin_email).encode())
    password_ok = hmac.compare_digest(password.encode(), settings.admin_password.encode())
    return email_ok and password_ok


async def login(db: AsyncSession, data: LoginRequest) -> LoginResponse:
    """
    Authenticate with email and password.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        EmailNotVerifiedError: Correct credentials for an unverified user
    """
    email = normalize_email(data.email)

    if _matches_env_admin(email, data.password):
        logger.info("Admin logged in with configured credentials")
        return _issue_tokens(
            UserResponse(
                id=ENV_ADMIN_ID,
                name="Administrator",
                email=email,
                role=UserRole.ADMIN,
                is_verified=True,
            )
        )

    user = await UserRepository.get_by_email(db, email)
    if user is None or not verify_password(data.password, user.password_hash):
        logger.warning(f"Failed login attempt for {email}")
        raise InvalidCredentialsError()

    if not user.is_verified:
        logger.warning(f"Login attempt for unverified account: {email}")
        raise EmailNotVerifiedError()

    logger.info(f"User logged in: {user.email} (role: {user.role.value})")
    return _issue_tokens(UserResponse.model_validate(user))
