"""
Warehouse writers: persist one chunk of facts in one transaction
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, Sequence
import logging

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import utc_now
from models import FACT_MODELS
from models.base import EntityType
from schemas.facts import AnyFact

logger = logging.getLogger(__name__)


class WarehouseWriter(ABC):
    """Destination of fact chunks"""

    @abstractmethod
    async def write_chunk(
        self,
        entity_type: EntityType,
        facts: Sequence[AnyFact],
        etl_run_id: Optional[str] = None
    ) -> int:
        """
        Persist a chunk atomically: either every fact is written or none is.

        Returns:
            Number of facts written
        """
        pass


class SQLWarehouseWriter(WarehouseWriter):
    """
    Write facts into the warehouse fact tables with upsert logic.

    Ensures:
    - No duplicate rows on repeated runs (INSERT ... ON CONFLICT DO UPDATE
      on the natural key)
    - One transaction per chunk
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Callable[[], datetime] = utc_now
    ):
        self.session_factory = session_factory
        self.clock = clock

    @staticmethod
    def _insert_for(dialect_name: str):
        if dialect_name == "sqlite":
            return sqlite.insert
        return postgresql.insert

    async def write_chunk(
        self,
        entity_type: EntityType,
        facts: Sequence[AnyFact],
        etl_run_id: Optional[str] = None
    ) -> int:
        if not facts:
            return 0

        model = FACT_MODELS[entity_type]
        key_columns = [column.name for column in model.__table__.primary_key.columns]
        loaded_at = self.clock()

        rows = []
        for fact in facts:
            row = fact.model_dump()
            row["etl_run_id"] = etl_run_id
            row["loaded_at"] = loaded_at
            rows.append(row)

        async with self.session_factory() as session:
            async with session.begin():
                insert = self._insert_for(session.bind.dialect.name)
                stmt = insert(model).values(rows)
                stmt = stmt.on_conflict_do_update(
                    index_elements=key_columns,
                    set_={
                        column.name: stmt.excluded[column.name]
                        for column in model.__table__.columns
                        if column.name not in key_columns
                    }
                )
                await session.execute(stmt)

        logger.debug(f"Upserted {len(rows)} rows into {model.__tablename__}")
        return len(rows)
