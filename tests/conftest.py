"""
Shared fixtures for Beacon API tests.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from beacon_api.core.auth import ROLE_ADMIN, ROLE_USER, CurrentUser
from beacon_api.core.rate_limit import reset_memory_store
from beacon_api.modules.applications.models import Application, ApprovalStatus, PaymentStatus
from beacon_api.modules.users.models import User, UserRole


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Each test starts with an empty in-memory rate limit store."""
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.delete = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def current_user():
    return CurrentUser(id=uuid4(), email="athlete@example.com", role=ROLE_USER, name="Asha Rao")


@pytest.fixture
def current_admin():
    return CurrentUser(id=uuid4(), email="admin@example.com", role=ROLE_ADMIN, name="Admin")


@pytest.fixture
def sample_user(current_user):
    """A verified user matching current_user."""
    return User(
        id=current_user.id,
        name="Asha Rao",
        email="athlete@example.com",
        sport="Football",
        password_hash="$2b$12$hash",
        role=UserRole.USER,
        is_verified=True,
        created_at=datetime(2026, 9, 1, tzinfo=UTC),
        updated_at=datetime(2026, 9, 1, tzinfo=UTC),
    )


@pytest.fixture
def complete_sections():
    """Stored section payloads that satisfy every required field."""
    return {
        "personal_info": {
            "fullName": "Asha Rao",
            "dob": "2009-04-12",
            "gender": "female",
            "phone": "9876543210",
            "address": "12 MG Road, Pune",
            "parentName": "Ravi Rao",
        },
        "academic_info": {"isStudying": True, "schoolName": "City High", "grade": "10"},
        "sports_info": [
            {
                "sportType": "Football",
                "position": "Forward",
                "level": "State",
                "clubName": "Pune FC",
                "experience": 4.0,
                "certificates": [],
            }
        ],
        "additional_info": {"fatherIncome": 20000.0, "householdIncome": 20000.0},
        "documents": {"certificates": [], "awards": [], "trophies": []},
    }


@pytest.fixture
def make_application(current_user):
    """Factory for Application instances owned by current_user."""

    def _make(**overrides):
        values = {
            "id": uuid4(),
            "user_id": current_user.id,
            "payment_status": PaymentStatus.PENDING,
            "approval_status": ApprovalStatus.PENDING,
            "created_at": datetime(2026, 9, 2, tzinfo=UTC),
            "updated_at": datetime(2026, 9, 2, tzinfo=UTC),
        }
        values.update(overrides)
        return Application(**values)

    return _make


@pytest.fixture
def complete_application(make_application, complete_sections):
    return make_application(**complete_sections)
