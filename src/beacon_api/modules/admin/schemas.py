"""
Admin Schemas

Response shapes for the back-office lists and dashboard.
"""

from uuid import UUID

from pydantic import Field, model_validator

from beacon_api.modules.applications.models import ApprovalStatus
from beacon_api.modules.applications.schemas import ApplicationResponse
from beacon_api.modules.auth.schemas import UserResponse
from beacon_api.modules.payments.schemas import PaymentResponse
from beacon_api.modules.shared.schemas import CamelModel
from beacon_api.modules.users.models import UserRole


class UserSummary(CamelModel):
    id: UUID
    name: str
    email: str


# ============================================
# Applications
# ============================================


class AdminApplicationItem(ApplicationResponse):
    applicant: UserSummary | None = None


class ApplicationStats(CamelModel):
    total: int = 0
    paid: int = 0
    pending_payments: int = 0
    approved: int = 0


class AdminApplicationListResponse(CamelModel):
    applications: list[AdminApplicationItem]
    total: int
    skip: int
    limit: int
    stats: ApplicationStats


class ApprovalUpdateRequest(CamelModel):
    """Request body for PATCH /admin/applications/{id}."""

    approval_status: ApprovalStatus


# ============================================
# Users
# ============================================


class UserStats(CamelModel):
    total: int = 0
    admins: int = 0
    regular_users: int = 0
    recent_users: int = Field(0, description="Users created in the last 7 days")


class AdminUserListResponse(CamelModel):
    users: list[UserResponse]
    total: int
    skip: int
    limit: int
    stats: UserStats


class UserUpdateRequest(CamelModel):
    """Request body for PATCH /admin/users/{id}. At least one field is required."""

    role: UserRole | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    is_verified: bool | None = None

    @model_validator(mode="after")
    def at_least_one_field(self) -> "UserUpdateRequest":
        if self.role is None and self.name is None and self.is_verified is None:
            raise ValueError("Provide at least one of role, name or isVerified")
        return self


# ============================================
# Payments
# ============================================


class AdminPaymentItem(PaymentResponse):
    payer: UserSummary | None = None


class PaymentStats(CamelModel):
    total_revenue: float = Field(0, description="Sum of paid payments in major currency units")
    count: int = 0
    paid_count: int = 0
    failed_count: int = 0


class AdminPaymentListResponse(CamelModel):
    payments: list[AdminPaymentItem]
    total: int
    skip: int
    limit: int
    stats: PaymentStats


# ============================================
# Dashboard
# ============================================


class UserCounts(CamelModel):
    total: int
    admins: int
    regular_users: int


class ApplicationCounts(CamelModel):
    total: int
    paid: int
    pending: int
    approved: int


class ChartPoint(CamelModel):
    month: str = Field(..., description="YYYY-MM")
    users: int
    applications: int


class AdminStatsResponse(CamelModel):
    users: UserCounts
    applications: ApplicationCounts
    chart_data: list[ChartPoint]
