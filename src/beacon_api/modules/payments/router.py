"""
Payments Router

Endpoints:
- POST /payment/verify - Verify the gateway's signed checkout callback

The endpoint is public: authenticity comes from the HMAC signature, which
only the gateway (holder of the shared secret) can produce.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from beacon_api.core.database import get_db
from beacon_api.core.errors import ServiceError, internal_error, raise_http_error
from beacon_api.modules.payments import service
from beacon_api.modules.payments.schemas import PaymentVerifyRequest, PaymentVerifyResponse
from beacon_api.modules.payments.service import InvalidSignatureError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/verify",
    response_model=PaymentVerifyResponse,
    summary="Verify Payment",
    responses={
        400: {
            "description": "Signature mismatch; nothing was changed",
            "content": {
                "application/json": {
                    "example": {"success": False, "message": "Invalid payment signature"}
                }
            },
        },
        404: {"description": "No application holds this order id"},
        409: {"description": "Application already settled by a different payment"},
    },
)
async def verify_payment(
    data: PaymentVerifyRequest,
    db: AsyncSession = Depends(get_db),
) -> PaymentVerifyResponse | JSONResponse:
    try:
        return await service.verify_payment(db, data)
    except InvalidSignatureError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=PaymentVerifyResponse(success=False, message=e.message).model_dump(),
        )
    except ServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error verifying payment: {e}")
        raise internal_error() from e
