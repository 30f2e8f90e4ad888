"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
This module handles JWT token validation and role-based access control
using the security utilities defined in security.py.

Every failure here, including a valid token with the wrong role, answers
401 so that protected resources are never revealed to the caller.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from beacon_api.core.security import decode_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields 401 rather than FastAPI's 403
security = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)

ROLE_USER = "user"
ROLE_ADMIN = "admin"

# Identity carried by tokens issued through the env-configured admin login
ENV_ADMIN_ID = UUID("00000000-0000-0000-0000-00000000a0a0")


@dataclass
class CurrentUser:
    """
    Represents an authenticated principal.

    Populated from JWT claims after token validation.

    Attributes:
        id: User's unique identifier (UUID)
        email: User's email address
        role: ``user`` or ``admin``
        name: User's display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_env_admin(self) -> bool:
        return self.id == ENV_ADMIN_ID

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, email={self.email}, role={self.role})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate JWT token and extract user claims.

    Args:
        token: JWT token string from Authorization header

    Returns:
        CurrentUser object with claims from the token

    Raises:
        HTTPException 401: If token is invalid, expired, or not an access token
    """
    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return CurrentUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency that requires any authenticated principal.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("NOT_AUTHENTICATED", "Authentication is required.")

    return _validate_jwt_token(credentials.credentials)


async def get_current_account_user(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    FastAPI dependency that requires a principal backed by a ``users`` row.

    Tokens from the env-configured admin login carry ENV_ADMIN_ID, which
    owns no account, so they cannot hold an application or payments.

    Raises:
        HTTPException 401: If the token is missing or invalid, or was issued
            to the env-configured admin
    """
    if user.is_env_admin:
        logger.warning("Access denied: env-configured admin on an account endpoint")
        raise _unauthorized(
            "ACCOUNT_REQUIRED", "This endpoint requires a registered user account."
        )

    return user


async def get_current_admin_user(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    FastAPI dependency that requires the ``admin`` role.

    Usage:
        @router.get("/admin/endpoint")
        async def admin_endpoint(
            admin: CurrentUser = Depends(get_current_admin_user)
        ):
            ...

    Raises:
        HTTPException 401: If the token is missing or invalid, or the role is not admin
    """
    if not user.is_admin:
        logger.warning(
            f"Access denied: User {user.id} ({user.email}) has role '{user.role}', "
            f"but '{ROLE_ADMIN}' is required"
        )
        raise _unauthorized("ADMIN_ACCESS_REQUIRED", "Admin access is required.")

    logger.debug(f"Authenticated admin: {user.id} ({user.email})")
    return user


__all__ = [
    "CurrentUser",
    "ENV_ADMIN_ID",
    "ROLE_ADMIN",
    "ROLE_USER",
    "get_current_account_user",
    "get_current_admin_user",
    "get_current_user",
]
