# ============================================================================
# File: analytics_etl/runner.py
# Description: Pipeline orchestrator with per-entity-type failure isolation
# ============================================================================
"""
Pipeline Runner - Orchestrates Extract, Transform, Load per entity type.

This module provides the orchestration layer with:
- Independent, concurrent jobs per entity type
- Partial failure support (bad records are skipped, not fatal)
- Watermark advancement only after every chunk has loaded
- Caller-supplied deadlines for extraction and load
- Structured run reports instead of raised errors
"""

import asyncio
import time
import uuid
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Union
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from analytics_etl.config import PipelineConfig
from analytics_etl.extractors import Extractor, OperationalSource, SQLOperationalSource
from analytics_etl.loaders import ChunkedLoader, SQLWarehouseWriter, WarehouseWriter
from analytics_etl.run_recorder import RunRecorder
from analytics_etl.transformers import FactTransformer
from analytics_etl.watermark import WatermarkStore
from core.clock import deadline_after, utc_now
from core.config import Settings, settings as default_settings
from core.database import create_engine, create_session_factory
from core.exceptions import ConfigurationError, ETLException, WatermarkError
from models.base import EntityType, ETLStatus
from schemas.facts import Skipped
from schemas.report import EntityRunReport, PipelinePhase, RunReport

logger = logging.getLogger(__name__)


class PipelineRunner:
    """
    Analytics ETL orchestrator.

    Responsibilities:
    - Orchestrate Extract → Transform → Load for each entity type
    - Isolate failures per entity type
    - Control watermark advancement
    - Record run metrics

    Per entity type the job moves through
    IDLE → EXTRACTING → TRANSFORMING → LOADING → WATERMARK_ADVANCED,
    or stops in FAILED.
    """

    def __init__(
        self,
        source: OperationalSource,
        warehouse: WarehouseWriter,
        watermarks: WatermarkStore,
        config: Optional[PipelineConfig] = None,
        recorder: Optional[RunRecorder] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.config = (config or PipelineConfig.from_settings()).validate_options()
        self.extractor = Extractor(
            source,
            batch_size=self.config.batch_size,
            completed_order_status=self.config.completed_order_status
        )
        self.transformer = FactTransformer(
            tax_rate=self.config.tax_rate,
            delivery_fee=self.config.delivery_fee,
            default_restaurant_category=self.config.default_restaurant_category
        )
        self.loader = ChunkedLoader(
            warehouse,
            commit_size=self.config.commit_size,
            max_retry_attempts=self.config.max_retry_attempts,
            retry_delay=self.config.retry_delay
        )
        self.watermarks = watermarks
        self.recorder = recorder
        self.clock = clock

    @staticmethod
    def resolve_entity_types(
        entity_types: Optional[Iterable[Union[str, EntityType]]] = None
    ) -> List[EntityType]:
        """
        Normalize requested entity types, defaulting to all of them.

        Raises:
            ConfigurationError: For unknown entity type names
        """
        if not entity_types:
            return list(EntityType)

        resolved = []
        for item in entity_types:
            try:
                entity_type = EntityType(item)
            except ValueError:
                raise ConfigurationError(
                    f"Unknown entity type: {item}",
                    context={"allowed": ", ".join(e.value for e in EntityType)}
                )
            if entity_type not in resolved:
                resolved.append(entity_type)
        return resolved

    async def run(
        self,
        entity_types: Optional[Iterable[Union[str, EntityType]]] = None,
        as_of: Optional[datetime] = None,
        dry_run: bool = False,
        backfill_from: Optional[datetime] = None,
        timeout: Optional[float] = None
    ) -> RunReport:
        """
        Run the pipeline for the requested entity types.

        Args:
            entity_types: Entity types to process (default: all)
            as_of: Reference time for the default lookback; also caps the
                extraction window when given
            dry_run: Extract and transform only; nothing is written
            backfill_from: Start of the window instead of the stored watermark
            timeout: Deadline in seconds for the whole run

        Returns:
            RunReport with one EntityRunReport per entity type

        Raises:
            ConfigurationError: Before any I/O, for invalid arguments
        """
        types = self.resolve_entity_types(entity_types)
        if timeout is None:
            timeout = self.config.timeout
        if timeout is not None and timeout <= 0:
            raise ConfigurationError("Timeout must be positive", context={"timeout": timeout})

        report = RunReport(started_at=self.clock(), dry_run=dry_run)
        deadline = deadline_after(timeout)
        semaphore = asyncio.Semaphore(self.config.max_concurrent_jobs)

        logger.info(
            f"Starting pipeline run {report.run_id} for "
            f"{', '.join(t.value for t in types)}{' (dry run)' if dry_run else ''}"
        )

        async def guarded(entity_type: EntityType) -> EntityRunReport:
            async with semaphore:
                return await self.run_entity(
                    entity_type,
                    run_id=report.run_id,
                    as_of=as_of,
                    dry_run=dry_run,
                    backfill_from=backfill_from,
                    deadline=deadline
                )

        results = await asyncio.gather(*(guarded(t) for t in types))
        for entity_report in results:
            report.entities[entity_report.entity_type] = entity_report

        report.completed_at = self.clock()
        logger.info(report.summary())
        return report

    async def run_entity(
        self,
        entity_type: EntityType,
        run_id: Optional[uuid.UUID] = None,
        as_of: Optional[datetime] = None,
        dry_run: bool = False,
        backfill_from: Optional[datetime] = None,
        deadline: Optional[float] = None
    ) -> EntityRunReport:
        """
        Run one entity type's job to completion.

        Never raises: every failure ends up in the returned report.
        """
        run_id = run_id or uuid.uuid4()
        report = EntityRunReport(entity_type=entity_type.value, dry_run=dry_run)
        started = time.perf_counter()
        record_id = None

        try:
            report.watermark_before = await self.watermarks.get(entity_type, as_of)
            since = backfill_from or report.watermark_before

            if self.recorder and not dry_run:
                record_id = await self.recorder.start(
                    run_id, entity_type, report.watermark_before, self.config.snapshot()
                )

            await self._run_phases(report, entity_type, run_id, since, as_of, dry_run, deadline)

        except ETLException as e:
            self._fail(report, e)
        except Exception as e:
            logger.exception(f"Unexpected error in {entity_type.value} job")
            self._fail(report, ETLException(
                "Unexpected error in ETL pipeline",
                context={
                    "entity_type": entity_type.value,
                    "phase": report.phase.value,
                    "records_extracted": report.extracted,
                    "records_loaded": report.loaded
                },
                original_exception=e
            ))

        report.duration_seconds = time.perf_counter() - started

        if report.status == ETLStatus.FAILED and not dry_run:
            try:
                await self.watermarks.record_failure(entity_type, report.error.get("message"))
            except WatermarkError as e:
                logger.warning(f"Could not record failure for {entity_type.value}: {e}")

        if self.recorder and not dry_run:
            await self.recorder.complete(record_id, report)

        return report

    async def _run_phases(
        self,
        report: EntityRunReport,
        entity_type: EntityType,
        run_id: uuid.UUID,
        since: datetime,
        as_of: Optional[datetime],
        dry_run: bool,
        deadline: Optional[float]
    ):
        # --------------------------------------------------
        # PHASE 1: EXTRACTION
        # --------------------------------------------------
        report.phase = PipelinePhase.EXTRACTING
        logger.info(f"Starting extraction for {entity_type.value} since {since.isoformat()}")

        records = []
        async for record in self.extractor.extract(entity_type, since, until=as_of, deadline=deadline):
            records.append(record)
        report.extracted = len(records)
        if records:
            # Extraction order is ascending by created_at
            report.max_source_timestamp = records[-1].created_at

        auxiliary = await self.extractor.lookup_auxiliary(entity_type, records, deadline)

        # --------------------------------------------------
        # PHASE 2: TRANSFORMATION
        # --------------------------------------------------
        report.phase = PipelinePhase.TRANSFORMING

        facts = []
        for record in records:
            outcome = self.transformer.transform(entity_type, record, auxiliary)
            if outcome is None:
                continue
            if isinstance(outcome, Skipped):
                report.skips.append(outcome)
            else:
                facts.append(outcome.fact)

        report.transformed = len(facts)
        report.skipped = len(report.skips)
        logger.info(
            f"Transformation complete for {entity_type.value}: "
            f"{report.transformed} succeeded, {report.skipped} skipped"
        )

        if dry_run:
            report.status = ETLStatus.SUCCESS
            logger.info(f"Dry run: {len(facts)} {entity_type.value} facts not loaded")
            return

        # --------------------------------------------------
        # PHASE 3: LOAD (CHUNKED UPSERT)
        # --------------------------------------------------
        report.phase = PipelinePhase.LOADING

        load_result = await self.loader.load(entity_type, facts, str(run_id), deadline)
        report.loaded = load_result.loaded
        report.failed = load_result.failed
        if not load_result.succeeded:
            self._fail(report, load_result.error)
            return

        # --------------------------------------------------
        # PHASE 4: ADVANCE WATERMARK
        # --------------------------------------------------
        report.new_watermark = await self.watermarks.advance(
            entity_type, report.max_source_timestamp, records_processed=report.extracted
        )
        report.phase = PipelinePhase.WATERMARK_ADVANCED
        report.status = ETLStatus.SUCCESS

        logger.info(
            f"{entity_type.value} completed - Extracted: {report.extracted}, "
            f"Loaded: {report.loaded}, Skipped: {report.skipped}, "
            f"Watermark: {report.new_watermark}"
        )

    @staticmethod
    def _fail(report: EntityRunReport, error: ETLException):
        report.status = ETLStatus.FAILED
        report.failed_phase = report.phase
        report.phase = PipelinePhase.FAILED
        report.error = error.to_dict()
        logger.error(
            f"{report.entity_type} job failed during {report.failed_phase.value}: {error.message}",
            extra={"error_context": report.error}
        )


def build_runner(
    source_session_factory: async_sessionmaker,
    warehouse_session_factory: async_sessionmaker,
    config: Optional[PipelineConfig] = None,
    clock: Callable[[], datetime] = utc_now
) -> PipelineRunner:
    """Wire the SQL-backed source, warehouse, watermark store and recorder"""
    config = (config or PipelineConfig.from_settings()).validate_options()
    return PipelineRunner(
        source=SQLOperationalSource(source_session_factory),
        warehouse=SQLWarehouseWriter(warehouse_session_factory, clock=clock),
        watermarks=WatermarkStore(
            warehouse_session_factory, default_lookback=config.default_lookback, clock=clock
        ),
        config=config,
        recorder=RunRecorder(warehouse_session_factory, clock=clock),
        clock=clock
    )


async def run_pipeline(
    entity_types: Optional[Iterable[Union[str, EntityType]]] = None,
    as_of: Optional[datetime] = None,
    dry_run: bool = False,
    backfill_from: Optional[datetime] = None,
    timeout: Optional[float] = None,
    settings: Optional[Settings] = None
) -> RunReport:
    """
    Run the pipeline against the configured source and warehouse databases.

    Raises:
        ConfigurationError: For invalid configuration or entity types,
            before any connection is opened
    """
    settings = settings or default_settings
    config = PipelineConfig.from_settings(settings).validate_options()
    PipelineRunner.resolve_entity_types(entity_types)

    source_engine = create_engine(settings.SOURCE_DATABASE_URL)
    warehouse_engine = create_engine(settings.WAREHOUSE_DATABASE_URL)
    try:
        runner = build_runner(
            create_session_factory(source_engine),
            create_session_factory(warehouse_engine),
            config
        )
        return await runner.run(
            entity_types,
            as_of=as_of,
            dry_run=dry_run,
            backfill_from=backfill_from,
            timeout=timeout
        )
    finally:
        await source_engine.dispose()
        await warehouse_engine.dispose()
