"""
Watermark store: per-entity-type incremental extraction state
"""

from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import utc_now
from core.exceptions import WatermarkError
from models.base import EntityType, ETLStatus
from models.watermark import ETLWatermark

logger = logging.getLogger(__name__)


class WatermarkStore:
    """
    Persists the last extracted source timestamp per entity type.

    Responsibilities:
    - Return the stored watermark, or a default lookback when none exists
    - Move the watermark forward only (never regress on retries or backfills)
    - Keep run statistics alongside each watermark

    Every operation opens its own session, so jobs for different entity
    types can use the store concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        default_lookback: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now
    ):
        self.session_factory = session_factory
        self.default_lookback = default_lookback
        self.clock = clock

    async def _get_row(self, session: AsyncSession, entity_type: EntityType) -> Optional[ETLWatermark]:
        result = await session.execute(
            select(ETLWatermark).where(ETLWatermark.entity_type == entity_type.value)
        )
        return result.scalar_one_or_none()

    async def _get_or_create_row(
        self, session: AsyncSession, entity_type: EntityType, now: datetime
    ) -> ETLWatermark:
        row = await self._get_row(session, entity_type)
        if row is None:
            row = ETLWatermark(
                entity_type=entity_type.value,
                last_extracted_at=None,
                status=ETLStatus.PENDING,
                total_runs=0,
                total_records_processed=0,
                last_records_processed=0,
                created_at=now,
                updated_at=now
            )
            session.add(row)
        return row

    async def get_stored(self, entity_type: EntityType) -> Optional[datetime]:
        """Stored watermark, or None if nothing was ever recorded"""
        try:
            async with self.session_factory() as session:
                row = await self._get_row(session, entity_type)
                return row.last_extracted_at if row else None
        except Exception as e:
            raise WatermarkError(
                "Failed to read watermark",
                context={"entity_type": entity_type.value, "operation": "read"},
                original_exception=e
            )

    async def get(self, entity_type: EntityType, as_of: Optional[datetime] = None) -> datetime:
        """
        Watermark to extract from.

        Falls back to `as_of - default_lookback` when no watermark is stored.
        """
        stored = await self.get_stored(entity_type)
        if stored is not None:
            return stored
        reference = as_of or self.clock()
        return reference - self.default_lookback

    async def advance(
        self,
        entity_type: EntityType,
        new_timestamp: Optional[datetime],
        records_processed: int = 0
    ) -> Optional[datetime]:
        """
        Set the watermark to max(current, new_timestamp) and mark success.

        Must only be called after every chunk of the batch has loaded.

        Returns:
            The stored watermark after the update
        """
        now = self.clock()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await self._get_or_create_row(session, entity_type, now)

                    current = row.last_extracted_at
                    if new_timestamp is not None and (current is None or new_timestamp > current):
                        row.last_extracted_at = new_timestamp

                    row.status = ETLStatus.SUCCESS
                    row.last_run_at = now
                    row.last_success_at = now
                    row.total_runs += 1
                    row.total_records_processed += records_processed
                    row.last_records_processed = records_processed
                    row.error_message = None
                    row.updated_at = now
                    stored = row.last_extracted_at
        except Exception as e:
            raise WatermarkError(
                "Failed to advance watermark",
                context={
                    "entity_type": entity_type.value,
                    "operation": "advance",
                    "new_timestamp": new_timestamp
                },
                original_exception=e
            )

        if stored != current:
            logger.info(f"Watermark for {entity_type.value} advanced: {current} -> {stored}")
        return stored

    async def record_failure(self, entity_type: EntityType, error_message: str):
        """Mark the last run as failed without touching the watermark value"""
        now = self.clock()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await self._get_or_create_row(session, entity_type, now)

                    row.status = ETLStatus.FAILED
                    row.last_run_at = now
                    row.last_failure_at = now
                    row.total_runs += 1
                    row.last_records_processed = 0
                    row.error_message = error_message
                    row.updated_at = now
        except Exception as e:
            raise WatermarkError(
                "Failed to record watermark failure",
                context={"entity_type": entity_type.value, "operation": "record_failure"},
                original_exception=e
            )
