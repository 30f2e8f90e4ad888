"""
Applications Service Layer

Business logic for the scholarship application form.

This module implements:
1. Load application:
   - Returns None when the user has not saved anything yet (router answers {})

2. Save section:
   - Strip protected fields, normalize values, upsert that one section
   - Other sections and both statuses are untouched

3. Create registration order:
   - Save any sections supplied with the request
   - Re-check completeness server-side (never trust the client's gate)
   - Refuse applications that are already paid
   - Create the gateway order, then store its id (only after the gateway succeeds)

4. Dashboard:
   - Application, payment history and account for the caller
"""

import logging
from typing import Any
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.auth import CurrentUser
from beacon_api.core.config import settings
from beacon_api.core.errors import ServiceError
from beacon_api.core.payment_gateway import PaymentGatewayError, create_order
from beacon_api.modules.applications import repository
from beacon_api.modules.applications.models import Application, PaymentStatus
from beacon_api.modules.applications.schemas import (
    ApplicationResponse,
    DashboardResponse,
    RegisterRequest,
    RegisterResponse,
)
from beacon_api.modules.applications.sections import (
    SECTION_COLUMNS,
    application_state,
    missing_fields_by_section,
    normalize_section,
)
from beacon_api.modules.auth.schemas import UserResponse
from beacon_api.modules.payments import repository as payments_repository
from beacon_api.modules.payments.schemas import PaymentResponse
from beacon_api.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class InvalidSectionError(ServiceError):
    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(
            message=message,
            error_code="INVALID_SECTION",
            status_code=400,
            details={"fields": errors} if errors else None,
        )


class ApplicationIncompleteError(ServiceError):
    def __init__(self, missing: dict[str, int]):
        super().__init__(
            message="Please complete all required fields before payment.",
            error_code="APPLICATION_INCOMPLETE",
            status_code=400,
            details={"missingFields": missing},
        )


class AlreadyPaidError(ServiceError):
    def __init__(self):
        super().__init__(
            message="The registration fee for this application has already been paid.",
            error_code="ALREADY_PAID",
            status_code=409,
        )


class PaymentGatewayUnavailableError(ServiceError):
    def __init__(self):
        super().__init__(
            message="Could not create the payment order. Please try again.",
            error_code="PAYMENT_GATEWAY_ERROR",
            status_code=502,
        )


def section_values(application: Application | None) -> dict[str, Any]:
    """Stored section payloads keyed by section name."""
    if application is None:
        return {}
    return {name: getattr(application, column) for name, column in SECTION_COLUMNS.items()}


def to_response(application: Application) -> ApplicationResponse:
    """Build the API view of an application, including derived completeness."""
    sections = section_values(application)
    missing = missing_fields_by_section(sections)
    paid = application.payment_status == PaymentStatus.COMPLETED

    response = ApplicationResponse.model_validate(application)
    response.missing_fields = missing
    response.is_complete = all(count == 0 for count in missing.values())
    response.state = application_state(sections, paid)
    return response


def _normalize(section: str, data: Any) -> Any:
    try:
        return normalize_section(section, data)
    except KeyError as e:
        raise InvalidSectionError(f"Unknown section: {section}") from e
    except ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise InvalidSectionError(f"Invalid data for section {section}", errors) from e


async def load_application(db: AsyncSession, user_id: UUID) -> ApplicationResponse | None:
    """Fetch the caller's application, or None if nothing has been saved yet."""
    application = await repository.get_by_user(db, user_id)
    return to_response(application) if application else None


async def save_section(
    db: AsyncSession,
    user_id: UUID,
    section: str,
    data: Any,
) -> ApplicationResponse:
    """
    Upsert one section of the caller's application.

    Partial payloads are accepted; only coercion failures (such as an
    unparseable date) are rejected.

    Raises:
        InvalidSectionError: Unknown section or uncoercible values
    """
    value = _normalize(section, data)

    application = await repository.upsert_sections(
        db, user_id, {SECTION_COLUMNS[section]: value}
    )
    logger.info(f"Saved section {section} for user {user_id}")

    return to_response(application)


async def create_registration_order(
    db: AsyncSession,
    user: CurrentUser,
    data: RegisterRequest,
) -> RegisterResponse:
    """
    Create the registration fee order for the caller's application.

    Raises:
        InvalidSectionError: A supplied section cannot be coerced
        ApplicationIncompleteError: Required fields are missing
        AlreadyPaidError: The fee has already been paid
        PaymentGatewayUnavailableError: The gateway call failed; no order id is stored
    """
    supplied = {
        name: getattr(data, column)
        for name, column in SECTION_COLUMNS.items()
        if getattr(data, column) is not None
    }
    columns = {SECTION_COLUMNS[name]: _normalize(name, value) for name, value in supplied.items()}

    application = await repository.get_by_user(db, user.id)

    if application is not None and application.payment_status == PaymentStatus.COMPLETED:
        raise AlreadyPaidError()

    if columns:
        application = await repository.upsert_sections(db, user.id, columns)

    missing = missing_fields_by_section(section_values(application))
    if any(missing.values()) or application is None:
        logger.info(f"Registration refused for user {user.id}: incomplete {missing}")
        raise ApplicationIncompleteError(missing)

    amount = settings.registration_fee_amount
    currency = settings.registration_fee_currency

    try:
        order = await create_order(
            amount=amount,
            currency=currency,
            receipt=f"receipt_{application.id}",
        )
    except PaymentGatewayError as e:
        logger.error(f"Order creation failed for application {application.id}: {e}")
        raise PaymentGatewayUnavailableError() from e

    await repository.set_order(db, application, order.id, order.amount, order.currency)
    logger.info(f"Created order {order.id} for application {application.id}")

    return RegisterResponse(
        order_id=order.id,
        application_id=application.id,
        amount=order.amount,
        currency=order.currency,
        key=settings.razorpay_key_id,
    )


async def get_dashboard(db: AsyncSession, user: CurrentUser) -> DashboardResponse:
    """Application, payments (newest first) and account details for the caller."""
    application = await repository.get_by_user(db, user.id)
    payments = await payments_repository.list_by_user(db, user.id)
    account = await UserRepository.get_by_id(db, user.id)

    return DashboardResponse(
        application=to_response(application) if application else None,
        payments=[PaymentResponse.model_validate(p) for p in payments],
        user=UserResponse.model_validate(account) if account else None,
    )
