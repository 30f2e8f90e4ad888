"""
Tests for the background job registry.
"""

from unittest.mock import AsyncMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from beacon_api.core import scheduler
from beacon_api.core.scheduler import list_registered_jobs, register_job, trigger_job_manually


@pytest.fixture(autouse=True)
def isolated_registry(monkeypatch):
    monkeypatch.setattr(scheduler, "_job_registry", {})
    monkeypatch.setattr(scheduler, "_scheduler", None)


class TestJobRegistry:
    def test_register_before_start_is_listed(self):
        register_job("purge", AsyncMock(), IntervalTrigger(seconds=60))

        jobs = list_registered_jobs()

        assert jobs == [{"job_id": "purge", "next_run_time": None}]

    @pytest.mark.asyncio
    async def test_trigger_returns_job_result(self):
        job = AsyncMock(return_value={"deleted": 3})
        register_job("purge", job, IntervalTrigger(seconds=60))

        outcome = await trigger_job_manually("purge")

        job.assert_awaited_once()
        assert outcome["status"] == "success"
        assert outcome["result"] == {"deleted": 3}

    @pytest.mark.asyncio
    async def test_trigger_reports_job_failure(self):
        register_job("purge", AsyncMock(side_effect=RuntimeError("db down")), IntervalTrigger(seconds=60))

        outcome = await trigger_job_manually("purge")

        assert outcome["status"] == "error"
        assert "db down" in outcome["error"]

    @pytest.mark.asyncio
    async def test_trigger_unknown_job(self):
        with pytest.raises(ValueError, match="not found"):
            await trigger_job_manually("missing")
