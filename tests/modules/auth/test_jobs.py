"""
Tests for the pending signup purge job.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from beacon_api.core.config import settings
from beacon_api.modules.auth.jobs import (
    JOB_ID_PURGE_PENDING_USERS,
    purge_pending_users,
    register_auth_jobs,
)

JOBS = "beacon_api.modules.auth.jobs"


@pytest.mark.asyncio
async def test_purge_uses_retention_cutoff(mock_db):
    @asynccontextmanager
    async def session():
        yield mock_db

    with (
        patch(f"{JOBS}.async_session_maker", session),
        patch(f"{JOBS}.PendingUserRepository") as mock_pending,
    ):
        mock_pending.purge_created_before = AsyncMock(return_value=4)

        result = await purge_pending_users()

    assert result["deleted"] == 4
    cutoff = mock_pending.purge_created_before.call_args.args[1]
    expected = datetime.now(UTC) - timedelta(seconds=settings.pending_user_retention_seconds)
    assert abs((cutoff - expected).total_seconds()) < 5


def test_register_auth_jobs():
    with patch(f"{JOBS}.register_job") as mock_register:
        register_auth_jobs()

    kwargs = mock_register.call_args.kwargs
    assert kwargs["job_id"] == JOB_ID_PURGE_PENDING_USERS
    assert kwargs["func"] is purge_pending_users
    assert kwargs["trigger"].interval == timedelta(seconds=60)
