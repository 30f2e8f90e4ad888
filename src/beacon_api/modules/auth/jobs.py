"""
Auth Background Jobs

Purges pending signups older than the retention window
(PENDING_USER_RETENTION_SECONDS, 10 minutes by default).

The retention window is measured from ``created_at`` and is separate from
the code expiry checked during verification. Between code expiry and the
next purge run, a verification attempt still reports "expired".
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from beacon_api.core.config import settings
from beacon_api.core.database import async_session_maker
from beacon_api.core.scheduler import register_job
from beacon_api.modules.users.repository import PendingUserRepository

logger = logging.getLogger(__name__)

JOB_ID_PURGE_PENDING_USERS = "auth_purge_pending_users"
PURGE_INTERVAL_SECONDS = 60


async def purge_pending_users() -> dict[str, Any]:
    """
    Delete pending signups whose retention window has passed.

    Idempotent: rows already deleted are simply not matched again.
    """
    cutoff = datetime.now(UTC) - timedelta(seconds=settings.pending_user_retention_seconds)

    async with async_session_maker() as db:
        deleted = await PendingUserRepository.purge_created_before(db, cutoff)

    if deleted:
        logger.info(f"Purged {deleted} pending signup(s) created before {cutoff.isoformat()}")

    return {"deleted": deleted, "cutoff": cutoff.isoformat()}


def register_auth_jobs() -> None:
    """Register auth background jobs with the scheduler."""
    register_job(
        job_id=JOB_ID_PURGE_PENDING_USERS,
        func=purge_pending_users,
        trigger=IntervalTrigger(seconds=PURGE_INTERVAL_SECONDS),
    )
