"""
Audit trail of pipeline runs (one etl_runs row per entity-type job)
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import utc_now
from models.base import EntityType, ETLStatus
from models.etl_run import ETLRun
from schemas.report import EntityRunReport

logger = logging.getLogger(__name__)


class RunRecorder:
    """
    Record ETL run metadata in the warehouse.

    Audit writes are best effort: a failure is logged and never changes the
    outcome of the job being recorded.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Callable[[], datetime] = utc_now
    ):
        self.session_factory = session_factory
        self.clock = clock

    async def start(
        self,
        run_id: uuid.UUID,
        entity_type: EntityType,
        watermark_before: Optional[datetime],
        config_snapshot: Optional[Dict[str, Any]] = None
    ) -> Optional[int]:
        """Create a RUNNING row; returns its primary key or None on failure"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    etl_run = ETLRun(
                        run_id=run_id,
                        entity_type=entity_type.value,
                        status=ETLStatus.RUNNING,
                        started_at=self.clock(),
                        watermark_before=watermark_before,
                        config_snapshot=config_snapshot
                    )
                    session.add(etl_run)
                    await session.flush()
                    return etl_run.id
        except Exception as e:
            logger.warning(f"Could not record start of {entity_type.value} run {run_id}: {e}")
            return None

    async def complete(self, record_id: Optional[int], report: EntityRunReport):
        """Store final statistics for a job started with `start()`"""
        if record_id is None:
            return
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(select(ETLRun).where(ETLRun.id == record_id))
                    etl_run = result.scalar_one()

                    etl_run.status = report.status
                    etl_run.completed_at = self.clock()
                    etl_run.duration_seconds = (
                        etl_run.completed_at - etl_run.started_at
                    ).total_seconds()
                    etl_run.records_extracted = report.extracted
                    etl_run.records_transformed = report.transformed
                    etl_run.records_skipped = report.skipped
                    etl_run.records_loaded = report.loaded
                    etl_run.records_failed = report.failed
                    etl_run.watermark_after = report.new_watermark
                    if report.error:
                        etl_run.error_message = report.error.get("message")
                        etl_run.error_details = report.error
                    elif report.skipped:
                        etl_run.error_message = f"{report.skipped} records skipped"
                        etl_run.error_details = {
                            "skips": [skip.model_dump() for skip in report.skips]
                        }
        except Exception as e:
            logger.warning(f"Could not record completion of {report.entity_type} run: {e}")
