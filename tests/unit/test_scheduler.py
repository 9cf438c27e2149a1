"""Tests for scheduled job registration."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.triggers.cron import CronTrigger

from cooked.core import scheduler as scheduler_module
from cooked.core.config import settings
from cooked.core.scheduler_tracker import retry_job_with_backoff
from cooked.models.service_models import AutoFoldSummary


@pytest.fixture
def mock_scheduler():
    with patch("cooked.core.scheduler.scheduler", MagicMock()) as mock:
        yield mock


@pytest.mark.unit
def test_start_scheduler_registers_all_jobs(mock_scheduler, monkeypatch) -> None:
    """Test one reminder job per crontab plus the auto-fold and recap jobs."""
    monkeypatch.setattr(settings, "reminder_crons", ["0 9 * * *", "0 18 * * *"])

    scheduler_module.start_scheduler()

    job_ids = [c.kwargs["id"] for c in mock_scheduler.add_job.call_args_list]
    assert job_ids == ["check_in_reminder_0", "check_in_reminder_1", "missed_check_in_auto_fold", "weekly_recap"]
    mock_scheduler.start.assert_called_once()


@pytest.mark.unit
def test_jobs_run_through_retry_wrapper(mock_scheduler) -> None:
    """Test every job is wrapped with retry tracking under its tracker name."""
    scheduler_module.start_scheduler()

    tracked = {}
    for call in mock_scheduler.add_job.call_args_list:
        assert call.args[0] is retry_job_with_backoff
        assert isinstance(call.kwargs["trigger"], CronTrigger)
        job_func, job_name = call.kwargs["args"]
        tracked[job_name] = job_func

    assert set(tracked) == set(scheduler_module.JOB_NAMES)
    assert tracked["missed_check_in_auto_fold"] is scheduler_module.run_auto_fold


@pytest.mark.unit
def test_stop_scheduler(mock_scheduler) -> None:
    """Test shutdown waits for running jobs."""
    scheduler_module.stop_scheduler()

    mock_scheduler.shutdown.assert_called_once_with(wait=True)


@pytest.mark.unit
async def test_run_auto_fold_calls_service() -> None:
    """Test the scheduled auto-fold entry point runs for the current day."""
    summary = AutoFoldSummary(
        success=True,
        run_date=date(2024, 1, 4),
        folded_for_date=date(2024, 1, 3),
        pacts_processed=1,
        folds_created=1,
        roast_threads_created=1,
        already_folded=0,
        errors_count=0,
    )

    with patch("cooked.core.scheduler.auto_fold_missed_check_ins", AsyncMock(return_value=summary)) as mock_fold:
        await scheduler_module.run_auto_fold()

    mock_fold.assert_awaited_once_with()
