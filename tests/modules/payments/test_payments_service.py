"""
Unit tests for payment verification.

These tests cover:
- Signature rejection with no side effects
- Applying a verified payment (status change and audit record in one commit)
- Idempotent replay of an already-applied callback
- Unknown orders and conflicting payments
- Concurrent callbacks for the same payment
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError

from beacon_api.core.config import settings
from beacon_api.core.payment_gateway import compute_signature
from beacon_api.modules.applications.models import Application, PaymentStatus
from beacon_api.modules.applications.repository import apply_payment_completed
from beacon_api.modules.payments.models import Payment, PaymentRecordStatus
from beacon_api.modules.payments.schemas import PaymentVerifyRequest
from beacon_api.modules.payments.service import (
    SUCCESS_MESSAGE,
    InvalidSignatureError,
    OrderNotFoundError,
    PaymentStateConflictError,
    verify_payment,
)

SERVICE = "beacon_api.modules.payments.service"
SECRET = "test_secret_key"


@pytest.fixture(autouse=True)
def gateway_secret():
    with patch.object(settings, "razorpay_key_secret", SECRET):
        yield


def _request(order_id="order_1", payment_id="pay_1", signature=None):
    return PaymentVerifyRequest(
        razorpay_order_id=order_id,
        razorpay_payment_id=payment_id,
        razorpay_signature=signature or compute_signature(order_id, payment_id, SECRET),
    )


@pytest.fixture
def ordered_application(complete_application):
    complete_application.razorpay_order_id = "order_1"
    complete_application.order_amount = 50000
    complete_application.order_currency = "INR"
    return complete_application


class TestVerifyPayment:
    @pytest.mark.asyncio
    async def test_valid_signature_marks_application_paid(
        self, mock_db, sample_user, ordered_application
    ):
        with (
            patch(f"{SERVICE}.applications_repository") as mock_apps,
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.send_payment_receipt", new_callable=AsyncMock) as mock_receipt,
        ):
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)
            mock_users.get_by_id = AsyncMock(return_value=sample_user)
            mock_receipt.return_value = True

            result = await verify_payment(mock_db, _request())

        assert result.success is True
        assert result.message == SUCCESS_MESSAGE
        assert ordered_application.payment_status == PaymentStatus.COMPLETED
        assert ordered_application.razorpay_payment_id == "pay_1"
        assert ordered_application.paid_at is not None

        payment = mock_db.add.call_args.args[0]
        assert isinstance(payment, Payment)
        assert payment.status == PaymentRecordStatus.PAID
        assert payment.amount == 50000
        assert payment.razorpay_order_id == "order_1"
        assert payment.application_id == ordered_application.id
        mock_db.commit.assert_awaited_once()
        mock_receipt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_signature_changes_nothing(self, mock_db, ordered_application):
        signature = compute_signature("order_1", "pay_1", SECRET)
        tampered = signature[:-1] + ("a" if signature[-1] != "a" else "b")

        with patch(f"{SERVICE}.applications_repository") as mock_apps:
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)

            with pytest.raises(InvalidSignatureError) as exc_info:
                await verify_payment(mock_db, _request(signature=tampered))

        assert exc_info.value.message == "Invalid payment signature"
        mock_apps.get_by_order_id.assert_not_called()
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_called()
        assert ordered_application.payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_signature_for_other_payment_rejected(self, mock_db):
        signature = compute_signature("order_1", "pay_other", SECRET)

        with pytest.raises(InvalidSignatureError):
            await verify_payment(mock_db, _request(signature=signature))

    @pytest.mark.asyncio
    async def test_unknown_order(self, mock_db):
        with patch(f"{SERVICE}.applications_repository") as mock_apps:
            mock_apps.get_by_order_id = AsyncMock(return_value=None)

            with pytest.raises(OrderNotFoundError) as exc_info:
                await verify_payment(mock_db, _request(order_id="order_missing"))

        assert exc_info.value.status_code == 404
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(self, mock_db, ordered_application):
        ordered_application.payment_status = PaymentStatus.COMPLETED
        ordered_application.razorpay_payment_id = "pay_1"

        with (
            patch(f"{SERVICE}.applications_repository") as mock_apps,
            patch(f"{SERVICE}.send_payment_receipt", new_callable=AsyncMock) as mock_receipt,
        ):
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)

            result = await verify_payment(mock_db, _request())

        assert result.success is True
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_called()
        mock_receipt.assert_not_called()

    @pytest.mark.asyncio
    async def test_different_payment_after_completion_conflicts(
        self, mock_db, ordered_application
    ):
        ordered_application.payment_status = PaymentStatus.COMPLETED
        ordered_application.razorpay_payment_id = "pay_first"

        with patch(f"{SERVICE}.applications_repository") as mock_apps:
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)

            with pytest.raises(PaymentStateConflictError) as exc_info:
                await verify_payment(mock_db, _request(payment_id="pay_second"))

        assert exc_info.value.status_code == 409
        assert ordered_application.razorpay_payment_id == "pay_first"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(self, mock_db, ordered_application):
        mock_db.commit.side_effect = RuntimeError("connection lost")

        with patch(f"{SERVICE}.applications_repository") as mock_apps:
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)

            with pytest.raises(RuntimeError):
                await verify_payment(mock_db, _request())

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lookup_locks_application_row(self, mock_db, sample_user, ordered_application):
        with (
            patch(f"{SERVICE}.applications_repository") as mock_apps,
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.send_payment_receipt", new_callable=AsyncMock),
        ):
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)
            mock_users.get_by_id = AsyncMock(return_value=sample_user)

            await verify_payment(mock_db, _request())

        mock_apps.get_by_order_id.assert_awaited_once_with(mock_db, "order_1", for_update=True)

    @pytest.mark.asyncio
    async def test_duplicate_payment_row_is_no_op_success(self, mock_db, ordered_application):
        mock_db.commit.side_effect = IntegrityError(
            "INSERT INTO payments", {}, Exception("duplicate key value")
        )

        with (
            patch(f"{SERVICE}.applications_repository") as mock_apps,
            patch(f"{SERVICE}.send_payment_receipt", new_callable=AsyncMock) as mock_receipt,
        ):
            mock_apps.get_by_order_id = AsyncMock(return_value=ordered_application)

            result = await verify_payment(mock_db, _request())

        assert result.success is True
        assert result.message == SUCCESS_MESSAGE
        mock_db.rollback.assert_awaited_once()
        mock_receipt.assert_not_called()


class LockedOrderStore:
    """
    Stands in for the applications table under SELECT ... FOR UPDATE.

    Each session gets its own Application copy built from the committed
    state. A locking lookup waits until the previous holder's transaction
    ends, so it sees whatever that transaction committed.
    """

    def __init__(self, template: Application):
        self.template = template
        self.committed_status = template.payment_status
        self.committed_payment_id = template.razorpay_payment_id
        self.lock = asyncio.Lock()
        self.holders: set[int] = set()
        self.recorded: list[str] = []

    async def get_by_order_id(self, db, order_id, *, for_update=False):
        if for_update:
            await self.lock.acquire()
            self.holders.add(id(db))
        if order_id != self.template.razorpay_order_id:
            return None
        return Application(
            id=self.template.id,
            user_id=self.template.user_id,
            razorpay_order_id=self.template.razorpay_order_id,
            order_amount=self.template.order_amount,
            order_currency=self.template.order_currency,
            payment_status=self.committed_status,
            razorpay_payment_id=self.committed_payment_id,
            approval_status=self.template.approval_status,
        )

    async def record_verified_payment(self, db, application, *, payment_id, **_):
        apply_payment_completed(application, payment_id)
        # Yield so a competing request gets a chance to run before commit
        await asyncio.sleep(0)
        self.recorded.append(payment_id)
        self.committed_status = application.payment_status
        self.committed_payment_id = application.razorpay_payment_id

    def end_transaction(self, db):
        if id(db) in self.holders:
            self.holders.remove(id(db))
            self.lock.release()


class TestConcurrentVerify:
    @pytest.mark.asyncio
    async def test_simultaneous_callbacks_record_one_payment(self, sample_user, ordered_application):
        store = LockedOrderStore(ordered_application)
        apps = AsyncMock()
        apps.get_by_order_id = store.get_by_order_id
        payments = AsyncMock()
        payments.record_verified_payment = store.record_verified_payment

        async def verify_in_own_session():
            db = AsyncMock()
            try:
                return await verify_payment(db, _request())
            finally:
                store.end_transaction(db)

        with (
            patch(f"{SERVICE}.applications_repository", apps),
            patch(f"{SERVICE}.repository", payments),
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.send_payment_receipt", new_callable=AsyncMock) as mock_receipt,
        ):
            mock_users.get_by_id = AsyncMock(return_value=sample_user)
            mock_receipt.return_value = True

            results = await asyncio.gather(verify_in_own_session(), verify_in_own_session())

        assert all(r.success for r in results)
        assert store.recorded == ["pay_1"]
        assert store.committed_status == PaymentStatus.COMPLETED
        mock_receipt.assert_awaited_once()


def test_payment_id_is_unique():
    unique_columns = [
        [c.name for c in constraint.columns]
        for constraint in Payment.__table__.constraints
        if isinstance(constraint, UniqueConstraint)
    ]
    assert ["razorpay_payment_id"] in unique_columns
