import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from analytics_etl.scheduler import ETLScheduler
from core.config import Settings


@pytest.mark.asyncio
async def test_scheduler_initialization():
    scheduler = ETLScheduler()
    assert scheduler.scheduler is not None
    assert scheduler.last_report is None


@pytest.mark.asyncio
async def test_scheduler_job_execution():
    report = MagicMock(succeeded=True, run_id="run-1")
    with patch("analytics_etl.scheduler.run_pipeline", new=AsyncMock(return_value=report)) as mock_run:
        scheduler = ETLScheduler()

        await scheduler.run_etl_job()

        assert mock_run.called
        assert scheduler.last_report is report


@pytest.mark.asyncio
async def test_scheduler_job_failure_is_contained():
    with patch(
        "analytics_etl.scheduler.run_pipeline",
        new=AsyncMock(side_effect=ConnectionError("database down"))
    ):
        scheduler = ETLScheduler()

        await scheduler.run_etl_job()

        assert scheduler.last_report is None


@pytest.mark.asyncio
async def test_scheduler_registers_interval_job():
    scheduler = ETLScheduler(Settings(ETL_SCHEDULE_INTERVAL_MINUTES=15))

    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("etl_job")
        assert job is not None
        assert job.trigger.interval.total_seconds() == 15 * 60
    finally:
        scheduler.stop()
