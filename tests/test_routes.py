"""
HTTP-level tests for routing, authentication gates and error shapes.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from beacon_api.core.auth import ENV_ADMIN_ID
from beacon_api.core.config import settings
from beacon_api.core.database import get_db
from beacon_api.core.security import create_access_token
from beacon_api.main import app
from beacon_api.modules.admin.schemas import (
    AdminStatsResponse,
    ApplicationCounts,
    UserCounts,
)
from beacon_api.modules.auth.schemas import SignupResponse


def _token(role: str) -> str:
    return create_access_token(
        subject=str(uuid4()),
        additional_claims={"email": f"{role}@example.com", "role": role, "name": role},
    )


def _auth(role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {_token(role)}"}


def _env_admin_auth() -> dict[str, str]:
    token = create_access_token(
        subject=str(ENV_ADMIN_ID),
        additional_claims={"email": "root@example.com", "role": "admin", "name": "Admin"},
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(mock_db):
    app.dependency_overrides[get_db] = lambda: mock_db
    with patch("beacon_api.core.rate_limit.get_redis", return_value=None):
        yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAdminGate:
    def test_no_token(self, client):
        response = client.get("/api/admin/stats")
        assert response.status_code == 401

    def test_user_token(self, client):
        response = client.get("/api/admin/users", headers=_auth("user"))

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "ADMIN_ACCESS_REQUIRED"

    def test_admin_token(self, client):
        stats = AdminStatsResponse(
            users=UserCounts(total=1, admins=1, regular_users=0),
            applications=ApplicationCounts(total=0, paid=0, pending=0, approved=0),
            chart_data=[],
        )
        with patch(
            "beacon_api.modules.admin.router.service.get_stats", new_callable=AsyncMock
        ) as mock_stats:
            mock_stats.return_value = stats

            response = client.get("/api/admin/stats", headers=_auth("admin"))

        assert response.status_code == 200
        assert response.json()["users"]["regularUsers"] == 0
        assert "chartData" in response.json()

    def test_invalid_token(self, client):
        response = client.get(
            "/api/admin/stats", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


class TestApplicationRoutes:
    def test_load_without_application_returns_empty_object(self, client):
        with patch(
            "beacon_api.modules.applications.service.repository.get_by_user",
            new_callable=AsyncMock,
        ) as mock_get:
            mock_get.return_value = None

            response = client.get("/api/user/application/save-section", headers=_auth("user"))

        assert response.status_code == 200
        assert response.json() == {}

    def test_save_requires_authentication(self, client):
        response = client.post(
            "/api/user/application/save-section",
            json={"section": "personalInfo", "data": {"fullName": "Asha"}},
        )
        assert response.status_code == 401

    def test_save_unknown_section_is_validation_error(self, client):
        response = client.post(
            "/api/user/application/save-section",
            json={"section": "bankDetails", "data": {}},
            headers=_auth("user"),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "VALIDATION_ERROR"

    def test_save_invalid_dob(self, client):
        response = client.post(
            "/api/user/application/save-section",
            json={"section": "personalInfo", "data": {"dob": "yesterday"}},
            headers=_auth("user"),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_SECTION"

    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("post", "/api/user/application/save-section",
             {"section": "personalInfo", "data": {"fullName": "Root"}}),
            ("post", "/api/register", {}),
            ("get", "/api/user/dashboard", None),
        ],
    )
    def test_env_admin_token_has_no_account(self, client, mock_db, method, path, body):
        with patch(
            "beacon_api.modules.applications.service.repository.upsert_sections",
            new_callable=AsyncMock,
        ) as mock_upsert:
            response = client.request(method, path, json=body, headers=_env_admin_auth())

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "ACCOUNT_REQUIRED"
        mock_upsert.assert_not_called()
        mock_db.execute.assert_not_called()


class TestAuthRoutes:
    def test_signup_missing_fields(self, client):
        response = client.post("/api/auth/signup", json={"email": "a@example.com"})

        assert response.status_code == 400
        body = response.json()["detail"]
        assert body["error"] == "VALIDATION_ERROR"
        assert {field["field"] for field in body["fields"]} >= {"name", "password"}

    def test_signup_rate_limited_per_email(self, client):
        payload = {"name": "Asha", "email": "asha@example.com", "password": "Secret123"}
        with patch(
            "beacon_api.modules.auth.router.service.request_signup", new_callable=AsyncMock
        ) as mock_signup:
            mock_signup.return_value = SignupResponse(email="asha@example.com")

            statuses = [client.post("/api/auth/signup", json=payload).status_code for _ in range(6)]

        assert statuses == [201, 201, 201, 201, 201, 429]

    def test_login_unexpected_error_is_500(self, client):
        with patch(
            "beacon_api.modules.auth.router.service.login", new_callable=AsyncMock
        ) as mock_login:
            mock_login.side_effect = RuntimeError("boom")

            response = client.post(
                "/api/auth/login", json={"email": "a@example.com", "password": "x"}
            )

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "INTERNAL_ERROR"


class TestPaymentRoutes:
    def test_invalid_signature_body(self, client):
        with patch.object(settings, "razorpay_key_secret", "test_secret_key"):
            response = client.post(
                "/api/payment/verify",
                json={
                    "razorpay_order_id": "order_1",
                    "razorpay_payment_id": "pay_1",
                    "razorpay_signature": "deadbeef",
                },
            )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid payment signature"}
