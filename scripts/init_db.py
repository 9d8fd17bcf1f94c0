import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import warehouse_engine
from core.logging import setup_logging
from models.base import Base
# Import all models to ensure they are registered
from models.watermark import ETLWatermark
from models.etl_run import ETLRun
from models.facts import OrderFactRow, UserFactRow, RestaurantFactRow, PaymentFactRow

logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to warehouse database...")
    engine = warehouse_engine()

    async with engine.begin() as conn:
        logger.info("Creating tables...")
        # Create all tables defined in models
        await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Tables created successfully: {', '.join(sorted(Base.metadata.tables))}")

    await engine.dispose()

if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
