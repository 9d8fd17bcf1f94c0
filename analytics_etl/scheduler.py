import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from analytics_etl.runner import run_pipeline
from core.config import Settings, settings as default_settings
from schemas.report import RunReport

logger = logging.getLogger(__name__)


class ETLScheduler:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.scheduler = AsyncIOScheduler()
        self.last_report: Optional[RunReport] = None

    async def run_etl_job(self):
        """Job to run the analytics pipeline for every entity type"""
        logger.info("Scheduler: Starting ETL job")
        try:
            report = await run_pipeline(settings=self.settings)
            self.last_report = report
            if report.succeeded:
                logger.info(f"Scheduler: ETL job finished for run {report.run_id}")
            else:
                logger.warning(
                    f"Scheduler: ETL job {report.run_id} failed for "
                    f"{', '.join(report.failed_entity_types)}"
                )
        except Exception as e:
            logger.error(f"Scheduler: ETL job failed - {e}")

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_etl_job,
            trigger=IntervalTrigger(minutes=self.settings.ETL_SCHEDULE_INTERVAL_MINUTES),
            id="etl_job",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        logger.info(
            f"ETL Scheduler started (every {self.settings.ETL_SCHEDULE_INTERVAL_MINUTES} minutes)"
        )

    def stop(self):
        self.scheduler.shutdown()
        logger.info("ETL Scheduler stopped")
