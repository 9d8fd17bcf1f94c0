"""
Load facts in bounded chunks with per-chunk retry
"""

import asyncio
from typing import Optional, Sequence
import logging

from pydantic import BaseModel, ConfigDict

from analytics_etl.loaders.warehouse import WarehouseWriter
from core.clock import remaining_time
from core.exceptions import ETLException, LoadChunkError, PipelineTimeoutError
from models.base import EntityType
from schemas.facts import AnyFact

logger = logging.getLogger(__name__)


class LoadResult(BaseModel):
    """Counts of persisted vs. failed facts for one load call"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    entity_type: str
    total: int = 0
    loaded: int = 0
    failed: int = 0
    chunks_committed: int = 0
    chunks_failed: int = 0
    retries: int = 0
    error: Optional[ETLException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.failed == 0


class ChunkedLoader:
    """
    Persist facts chunk by chunk.

    Each chunk of `commit_size` facts is committed independently. A failing
    chunk is retried up to `max_retry_attempts` attempts in total with a
    fixed `retry_delay`. When a chunk exhausts its attempts, loading stops:
    previously committed chunks stay committed and the remaining facts are
    reported as failed.
    """

    def __init__(
        self,
        warehouse: WarehouseWriter,
        commit_size: int = 500,
        max_retry_attempts: int = 3,
        retry_delay: float = 0.05
    ):
        self.warehouse = warehouse
        self.commit_size = commit_size
        self.max_retry_attempts = max_retry_attempts
        self.retry_delay = retry_delay

    async def load(
        self,
        entity_type: EntityType,
        facts: Sequence[AnyFact],
        etl_run_id: Optional[str] = None,
        deadline: Optional[float] = None
    ) -> LoadResult:
        """
        Load facts in extraction order.

        Never raises for warehouse failures; the returned result carries a
        LoadChunkError or PipelineTimeoutError instead.
        """
        result = LoadResult(entity_type=entity_type.value, total=len(facts))
        if not facts:
            return result

        for chunk_index, start in enumerate(range(0, len(facts), self.commit_size)):
            chunk = facts[start:start + self.commit_size]
            try:
                await self._commit_chunk(entity_type, chunk, chunk_index, etl_run_id, deadline, result)
            except (LoadChunkError, PipelineTimeoutError) as e:
                result.chunks_failed += 1
                result.failed = result.total - result.loaded
                result.error = e
                logger.error(
                    f"Load stopped for {entity_type.value} at chunk {chunk_index}: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                break

            result.loaded += len(chunk)
            result.chunks_committed += 1
            logger.info(f"Chunk {chunk_index + 1}: Loaded {len(chunk)} {entity_type.value} facts")

        return result

    async def _commit_chunk(
        self,
        entity_type: EntityType,
        chunk: Sequence[AnyFact],
        chunk_index: int,
        etl_run_id: Optional[str],
        deadline: Optional[float],
        result: LoadResult
    ):
        context = {
            "entity_type": entity_type.value,
            "chunk_index": chunk_index,
            "chunk_size": len(chunk),
        }
        last_exception = None

        for attempt in range(1, self.max_retry_attempts + 1):
            timeout = remaining_time(deadline, f"loading {entity_type.value} chunk {chunk_index}")
            try:
                await asyncio.wait_for(
                    self.warehouse.write_chunk(entity_type, chunk, etl_run_id), timeout
                )
                return
            except asyncio.TimeoutError as e:
                raise PipelineTimeoutError(
                    "Deadline exceeded during load",
                    context={**context, "attempts": attempt},
                    original_exception=e
                )
            except Exception as e:
                last_exception = e
                if attempt < self.max_retry_attempts:
                    result.retries += 1
                    logger.warning(
                        f"Chunk {chunk_index} of {entity_type.value} failed "
                        f"(attempt {attempt}/{self.max_retry_attempts}). "
                        f"Retrying in {self.retry_delay} seconds: {e}"
                    )
                    await asyncio.sleep(self.retry_delay)

        raise LoadChunkError(
            f"Chunk {chunk_index} failed after {self.max_retry_attempts} attempts",
            context={**context, "attempts": self.max_retry_attempts},
            original_exception=last_exception
        )
