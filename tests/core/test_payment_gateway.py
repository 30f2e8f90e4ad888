"""
Tests for the Razorpay gateway client.

These tests cover:
- Checkout signature computation and verification
- Order creation against a mocked transport
- Mapping of transport failures to PaymentGatewayError
"""

import json
from unittest.mock import patch

import httpx
import pytest

from beacon_api.core.config import settings
from beacon_api.core.payment_gateway import (
    PaymentGatewayError,
    compute_signature,
    create_order,
    verify_payment_signature,
)

SECRET = "test_secret_key"


@pytest.fixture
def gateway_credentials():
    with (
        patch.object(settings, "razorpay_key_id", "rzp_test_key"),
        patch.object(settings, "razorpay_key_secret", SECRET),
    ):
        yield


class TestSignature:
    def test_compute_signature_is_hex_sha256(self):
        signature = compute_signature("order_1", "pay_1", SECRET)
        assert len(signature) == 64
        int(signature, 16)

    def test_signature_depends_on_both_ids(self):
        base = compute_signature("order_1", "pay_1", SECRET)
        assert compute_signature("order_2", "pay_1", SECRET) != base
        assert compute_signature("order_1", "pay_2", SECRET) != base

    def test_verify_accepts_exact_signature(self, gateway_credentials):
        signature = compute_signature("order_1", "pay_1", SECRET)
        assert verify_payment_signature("order_1", "pay_1", signature) is True

    def test_verify_rejects_single_character_change(self, gateway_credentials):
        signature = compute_signature("order_1", "pay_1", SECRET)
        flipped = "0" if signature[-1] != "0" else "1"
        assert verify_payment_signature("order_1", "pay_1", signature[:-1] + flipped) is False

    def test_verify_rejects_signature_for_other_order(self, gateway_credentials):
        signature = compute_signature("order_other", "pay_1", SECRET)
        assert verify_payment_signature("order_1", "pay_1", signature) is False

    def test_verify_rejects_when_secret_missing(self):
        signature = compute_signature("order_1", "pay_1", SECRET)
        with patch.object(settings, "razorpay_key_secret", None):
            assert verify_payment_signature("order_1", "pay_1", signature) is False


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_create_order_success(self, gateway_credentials):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            captured["auth"] = request.headers.get("authorization")
            return httpx.Response(
                200,
                json={
                    "id": "order_ABC123",
                    "amount": 50000,
                    "currency": "INR",
                    "receipt": "receipt_1",
                    "status": "created",
                },
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            order = await create_order(50000, "INR", "receipt_1", client=client)

        assert order.id == "order_ABC123"
        assert order.amount == 50000
        assert order.currency == "INR"
        assert captured["url"].endswith("/orders")
        assert captured["body"] == {"amount": 50000, "currency": "INR", "receipt": "receipt_1"}
        assert captured["auth"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_create_order_truncates_long_receipt(self, gateway_credentials):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "order_1", "amount": 100, "currency": "INR"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await create_order(100, "INR", "r" * 60, client=client)

        assert len(captured["body"]["receipt"]) == 40

    @pytest.mark.asyncio
    async def test_create_order_http_error(self, gateway_credentials):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"description": "bad key"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PaymentGatewayError):
                await create_order(50000, "INR", "receipt_1", client=client)

    @pytest.mark.asyncio
    async def test_create_order_timeout(self, gateway_credentials):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PaymentGatewayError, match="timed out"):
                await create_order(50000, "INR", "receipt_1", client=client)

    @pytest.mark.asyncio
    async def test_create_order_connection_error(self, gateway_credentials):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PaymentGatewayError, match="unreachable"):
                await create_order(50000, "INR", "receipt_1", client=client)

    @pytest.mark.asyncio
    async def test_create_order_missing_order_id(self, gateway_credentials):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"amount": 50000})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PaymentGatewayError):
                await create_order(50000, "INR", "receipt_1", client=client)

    @pytest.mark.asyncio
    async def test_create_order_without_credentials(self):
        with patch.object(settings, "razorpay_key_id", None):
            with pytest.raises(PaymentGatewayError, match="not configured"):
                await create_order(50000, "INR", "receipt_1")
