"""
Application Schemas

Section payloads, request bodies and responses for the application flow.

Every section field is optional: a section may be saved in any partial
state. Validation here only normalizes values (blank strings and NaN become
missing, dates are parsed); completeness is computed separately in
sections.py.
"""

import math
from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from beacon_api.modules.applications.models import ApprovalStatus, PaymentStatus
from beacon_api.modules.auth.schemas import UserResponse
from beacon_api.modules.payments.schemas import PaymentResponse
from beacon_api.modules.shared.schemas import CamelModel

SectionName = Literal[
    "personalInfo",
    "academicInfo",
    "sportsInfo",
    "additionalInfo",
    "documents",
]

ApplicationState = Literal["empty", "partially-filled", "complete-unpaid", "paid"]


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


class SectionModel(CamelModel):
    """Base for section payloads: "" and NaN are treated as absent."""

    @model_validator(mode="before")
    @classmethod
    def normalize_blanks(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: _blank_to_none(value) for key, value in data.items()}
        return data


# ============================================
# Sections
# ============================================


class PersonalInfo(SectionModel):
    full_name: str | None = None
    dob: date | None = None
    gender: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    parent_name: str | None = None

    @field_validator("dob", mode="before")
    @classmethod
    def coerce_dob(cls, v: Any) -> Any:
        """Accept plain dates and ISO timestamps ("2010-01-01T00:00:00.000Z")."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v


class AcademicInfo(SectionModel):
    # None means the applicant has not answered; treated as still studying
    is_studying: bool | None = None
    school_name: str | None = None
    grade: str | None = None

    @field_validator("grade", mode="before")
    @classmethod
    def grade_as_text(cls, v: Any) -> Any:
        if isinstance(v, int | float) and not isinstance(v, bool):
            return str(int(v)) if float(v).is_integer() else str(v)
        return v


class SportsEntry(SectionModel):
    sport_type: str | None = None
    position: str | None = None
    club_name: str | None = None
    level: str | None = None
    experience: float | None = Field(None, ge=0)
    achievements: str | None = None
    honors: str | None = None
    future_goals: str | None = None
    certificates: list[str] = Field(default_factory=list)


class AdditionalInfo(SectionModel):
    other_sports: str | None = None
    leadership_role: str | None = None
    father_income: float | None = Field(None, ge=0)
    mother_income: float | None = Field(None, ge=0)
    other_income: float | None = Field(None, ge=0)
    household_income: float | None = Field(None, ge=0)

    @model_validator(mode="after")
    def derive_household_income(self) -> "AdditionalInfo":
        """Household income is the sum of whichever income components are present."""
        components = [
            value
            for value in (self.father_income, self.mother_income, self.other_income)
            if value is not None
        ]
        if components:
            self.household_income = sum(components)
        return self


class Documents(SectionModel):
    certificates: list[str] = Field(default_factory=list)
    awards: list[str] = Field(default_factory=list)
    trophies: list[str] = Field(default_factory=list)


# ============================================
# Requests
# ============================================


class SaveSectionRequest(BaseModel):
    """Request body for POST /user/application/save-section."""

    section: SectionName
    data: dict[str, Any] | list[dict[str, Any]]


class RegisterRequest(CamelModel):
    """
    Request body for POST /register.

    Any sections supplied are saved before the completeness check, so the
    client can submit the whole form in one call or send an empty body
    after saving section by section.
    """

    personal_info: dict[str, Any] | None = None
    academic_info: dict[str, Any] | None = None
    sports_info: list[dict[str, Any]] | None = None
    additional_info: dict[str, Any] | None = None
    documents: dict[str, Any] | None = None


# ============================================
# Responses
# ============================================


class ApplicationResponse(CamelModel):
    id: UUID
    user_id: UUID
    personal_info: dict[str, Any] | None = None
    academic_info: dict[str, Any] | None = None
    sports_info: list[dict[str, Any]] | None = None
    additional_info: dict[str, Any] | None = None
    documents: dict[str, Any] | None = None
    payment_status: PaymentStatus
    approval_status: ApprovalStatus
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    paid_at: datetime | None = None
    reviewed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Derived
    missing_fields: dict[str, int] = Field(default_factory=dict)
    is_complete: bool = False
    state: ApplicationState = "empty"


class SaveSectionResponse(CamelModel):
    message: str = "Section saved successfully"
    application: ApplicationResponse


class RegisterResponse(CamelModel):
    """Everything the client needs to open the gateway checkout."""

    order_id: str
    application_id: UUID
    amount: int
    currency: str
    key: str | None = Field(None, description="Public gateway key id (never the secret)")


class DashboardResponse(CamelModel):
    application: ApplicationResponse | None = None
    payments: list[PaymentResponse] = Field(default_factory=list)
    user: UserResponse | None = None
