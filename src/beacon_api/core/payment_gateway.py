"""
Razorpay Payment Gateway Client

Order creation over the Razorpay REST API (httpx) and verification of the
signature Razorpay returns to the client after checkout.

Signature scheme:
    signature = hex(HMAC-SHA256(key_secret, f"{order_id}|{payment_id}"))

Only an exact match is authentic. The comparison is constant-time.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass

import httpx

from beacon_api.core.config import settings

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """Raised when the gateway cannot create an order."""


@dataclass(frozen=True)
class GatewayOrder:
    """An order reserved with the gateway."""

    id: str
    amount: int
    currency: str
    receipt: str


async def create_order(
    amount: int,
    currency: str,
    receipt: str,
    client: httpx.AsyncClient | None = None,
) -> GatewayOrder:
    """
    Create a Razorpay order.

    Args:
        amount: Amount in minor currency units
        currency: ISO currency code
        receipt: Merchant receipt reference (max 40 chars on Razorpay)
        client: Optional pre-configured client, mainly for tests

    Returns:
        The created GatewayOrder

    Raises:
        PaymentGatewayError: On missing credentials, transport failure,
            timeout, non-2xx response or a malformed body
    """
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise PaymentGatewayError("Payment gateway is not configured")

    url = f"{settings.razorpay_api_url.rstrip('/')}/orders"
    payload = {"amount": amount, "currency": currency, "receipt": receipt[:40]}
    auth = (settings.razorpay_key_id, settings.razorpay_key_secret)

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.payment_gateway_timeout_seconds)

    try:
        response = await http.post(url, json=payload, auth=auth)
        response.raise_for_status()
        data = response.json()
    except httpx.TimeoutException as e:
        logger.error(f"[Razorpay] Order creation timed out for receipt {receipt}")
        raise PaymentGatewayError("Payment gateway timed out") from e
    except httpx.HTTPStatusError as e:
        logger.error(
            f"[Razorpay] HTTP {e.response.status_code} creating order for receipt {receipt}"
        )
        raise PaymentGatewayError("Payment gateway rejected the order") from e
    except httpx.RequestError as e:
        logger.error(f"[Razorpay] Request error creating order: {e}")
        raise PaymentGatewayError("Payment gateway unreachable") from e
    except ValueError as e:
        logger.error("[Razorpay] Order response was not valid JSON")
        raise PaymentGatewayError("Invalid response from payment gateway") from e
    finally:
        if owns_client:
            await http.aclose()

    order_id = data.get("id")
    if not order_id:
        raise PaymentGatewayError("Payment gateway returned no order id")

    logger.info(f"[Razorpay] Created order {order_id} for receipt {receipt}")
    return GatewayOrder(
        id=order_id,
        amount=int(data.get("amount", amount)),
        currency=data.get("currency", currency),
        receipt=data.get("receipt", receipt),
    )


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of ``{order_id}|{payment_id}`` under ``secret``."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """
    Check a checkout signature against the configured key secret.

    Returns:
        True only for an exact match; False for any other value or when no
        secret is configured
    """
    if not settings.razorpay_key_secret:
        logger.error("[Razorpay] Cannot verify signature: RAZORPAY_KEY_SECRET not set")
        return False

    expected = compute_signature(order_id, payment_id, settings.razorpay_key_secret)
    return hmac.compare_digest(expected.encode(), signature.encode())
