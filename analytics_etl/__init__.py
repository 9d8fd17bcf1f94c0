"""
Analytics ETL pipeline for the food-ordering warehouse.

This package moves operational records (orders, users, restaurants,
payments) into denormalized analytics fact tables:

Modules:
    config: Typed pipeline options built from environment settings
    watermark: Per-entity-type incremental extraction state
    runner: Orchestrator that runs one isolated job per entity type
    run_recorder: Audit rows for every job in etl_runs
    scheduler: APScheduler integration for periodic runs

Subpackages:
    extractors: Keyset-paged extraction from the operational database
    transformers: Record → fact derivation (value categories, segments)
    loaders: Chunked warehouse upserts with per-chunk retry

Architecture:
    Each entity type goes through four steps:

    1. Extract - Records created since the watermark, ordered by (created_at, id)
    2. Transform - One fact per record, bad records are skipped and reported
    3. Load - Idempotent upserts in chunks of `commit_size`
    4. Advance - The watermark moves forward only after every chunk loaded

    A failure in one entity type never affects the others.

Usage:
    from analytics_etl import run_pipeline

    report = await run_pipeline(["orders", "users"], dry_run=True)
    print(report.summary())

Error Handling:
    All components raise exceptions from core.exceptions. The runner turns
    them into FAILED entries in the RunReport instead of propagating them;
    only ConfigurationError is raised to the caller, before any I/O.
"""

from analytics_etl.config import PipelineConfig
from analytics_etl.runner import PipelineRunner, build_runner, run_pipeline
from analytics_etl.watermark import WatermarkStore

__all__ = [
    "PipelineConfig",
    "PipelineRunner",
    "WatermarkStore",
    "build_runner",
    "run_pipeline",
]
