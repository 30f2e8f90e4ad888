"""Authentication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from beacon_api.modules.shared.schemas import CamelModel
from beacon_api.modules.users.models import UserRole


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    sport: str | None = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not any(c.isupper() for c in v):
            raise ValueError("password must contain at least one uppercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("password must contain at least one digit")
        return v


class SignupResponse(BaseModel):
    message: str = "Verification code sent. Please check your email."
    email: str


class VerifyOtpRequest(BaseModel):
    """Request body for POST /auth/verify-otp."""

    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=12)

    @field_validator("otp")
    @classmethod
    def strip_otp(cls, v: str) -> str:
        return v.strip()


class VerifyOtpResponse(BaseModel):
    message: str = "Email verified and account created successfully! You can now login."


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    """Public view of a user. The password hash is never included."""

    id: UUID
    name: str
    email: str
    role: UserRole
    is_verified: bool
    sport: str | None = None
    created_at: datetime | None = None


class LoginResponse(CamelModel):
    """Login response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
