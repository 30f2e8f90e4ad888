"""
Tests for token handling and the authentication dependencies.
"""

from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from beacon_api.core.auth import (
    ENV_ADMIN_ID,
    ROLE_ADMIN,
    CurrentUser,
    get_current_account_user,
    get_current_admin_user,
    get_current_user,
)
from beacon_api.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("Secret123")
        assert hashed != "Secret123"
        assert verify_password("Secret123", hashed) is True
        assert verify_password("Secret124", hashed) is False

    def test_verify_against_malformed_hash(self):
        assert verify_password("Secret123", "not-a-hash") is False


class TestTokens:
    def test_access_token_round_trip(self):
        user_id = str(uuid4())
        token = create_access_token(subject=user_id, additional_claims={"role": "user"})

        payload = decode_token(token)

        assert payload["sub"] == user_id
        assert payload["role"] == "user"
        assert payload["type"] == "access"

    def test_decode_garbage_returns_none(self):
        assert decode_token("not.a.token") is None


class TestCurrentUserDependency:
    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "NOT_AUTHENTICATED"

    @pytest.mark.asyncio
    async def test_valid_access_token(self):
        user_id = uuid4()
        token = create_access_token(
            subject=str(user_id),
            additional_claims={"email": "a@example.com", "role": "user", "name": "A"},
        )

        user = await get_current_user(_bearer(token))

        assert user.id == user_id
        assert user.email == "a@example.com"
        assert user.is_admin is False

    @pytest.mark.asyncio
    async def test_refresh_token_rejected(self):
        token = create_refresh_token(subject=str(uuid4()))

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_bearer(token))

        assert exc_info.value.detail["error"] == "INVALID_TOKEN_TYPE"

    @pytest.mark.asyncio
    async def test_user_role_cannot_pass_admin_gate(self, current_user):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_admin_user(current_user)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "ADMIN_ACCESS_REQUIRED"

    @pytest.mark.asyncio
    async def test_admin_role_passes_admin_gate(self, current_admin):
        assert await get_current_admin_user(current_admin) is current_admin


class TestAccountUserDependency:
    @pytest.mark.asyncio
    async def test_registered_user_passes(self, current_user):
        assert await get_current_account_user(current_user) is current_user

    @pytest.mark.asyncio
    async def test_registered_admin_passes(self, current_admin):
        assert await get_current_account_user(current_admin) is current_admin

    @pytest.mark.asyncio
    async def test_env_admin_rejected(self):
        env_admin = CurrentUser(id=ENV_ADMIN_ID, email="root@example.com", role=ROLE_ADMIN)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_account_user(env_admin)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "ACCOUNT_REQUIRED"
