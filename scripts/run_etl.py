"""
Script to run the analytics ETL pipeline once
"""

import argparse
import asyncio
import sys
import os
import logging
from datetime import datetime

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from analytics_etl.runner import run_pipeline
from core.exceptions import ConfigurationError
from core.logging import setup_logging
from models.base import EntityType

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the analytics ETL pipeline")
    parser.add_argument(
        "--entities",
        nargs="+",
        choices=[e.value for e in EntityType],
        help="Entity types to process (default: all)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Extract and transform only; nothing is loaded or advanced"
    )
    parser.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        help="Reference time (ISO 8601, UTC) for lookback and window end"
    )
    parser.add_argument(
        "--backfill-from",
        type=datetime.fromisoformat,
        help="Extract from this time (ISO 8601, UTC) instead of the watermark"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Deadline for the whole run in seconds"
    )
    return parser.parse_args(argv)


async def run_etl(args) -> int:
    """Run the pipeline and return a process exit code"""
    try:
        report = await run_pipeline(
            entity_types=args.entities,
            as_of=args.as_of,
            dry_run=args.dry_run,
            backfill_from=args.backfill_from,
            timeout=args.timeout
        )
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    except Exception as e:
        logger.error(f"ETL pipeline error: {str(e)}")
        return 1

    print(report.summary())
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_etl(parse_args())))
