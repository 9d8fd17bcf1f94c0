"""
Incremental extractor with keyset paging and batched auxiliary lookups
"""

import asyncio
from datetime import datetime
from typing import AsyncIterator, List, Optional, Sequence
import logging

from analytics_etl.extractors.base import OperationalSource
from core.clock import remaining_time
from core.exceptions import ExtractionError, PipelineTimeoutError
from models.base import EntityType
from schemas.source import AnySourceRecord, AuxiliaryLookup

logger = logging.getLogger(__name__)


class Extractor:
    """
    Fetch source records created since a watermark.

    Features:
    - Keyset paging in pages of `batch_size` rows
    - Ordering check: (created_at, id) must strictly increase
    - Per-page deadline enforcement
    - Auxiliary lookups batched in slices of `batch_size` ids

    Attributes:
        batch_size: Rows fetched per source call (default: 1000)
        completed_order_status: Order status counted as spend in user stats
    """

    def __init__(
        self,
        source: OperationalSource,
        batch_size: int = 1000,
        completed_order_status: str = "COMPLETED"
    ):
        self.source = source
        self.batch_size = batch_size
        self.completed_order_status = completed_order_status

    def _query_for(self, entity_type: EntityType):
        queries = {
            EntityType.ORDERS: self.source.query_orders,
            EntityType.USERS: self.source.query_users,
            EntityType.RESTAURANTS: self.source.query_restaurants,
            EntityType.PAYMENTS: self.source.query_payments,
        }
        return queries[entity_type]

    async def extract(
        self,
        entity_type: EntityType,
        since: datetime,
        until: Optional[datetime] = None,
        deadline: Optional[float] = None
    ) -> AsyncIterator[AnySourceRecord]:
        """
        Yield records with `created_at >= since` in (created_at, id) order.

        The sequence is lazy and can only be consumed once.

        Raises:
            ExtractionError: Source unavailable, query failure or a page that
                breaks the window or ordering contract
            PipelineTimeoutError: Deadline exceeded while fetching a page
        """
        query = self._query_for(entity_type)
        after = None
        last_key = None
        page = 0
        total = 0

        while True:
            page += 1
            context = {
                "entity_type": entity_type.value,
                "since": since,
                "page": page,
            }

            try:
                timeout = remaining_time(deadline, f"extracting {entity_type.value} page {page}")
                records = await asyncio.wait_for(
                    query(since, until, after, self.batch_size), timeout
                )
            except PipelineTimeoutError:
                raise
            except asyncio.TimeoutError as e:
                raise PipelineTimeoutError(
                    "Deadline exceeded during extraction",
                    context=context,
                    original_exception=e
                )
            except Exception as e:
                raise ExtractionError(
                    f"Failed to query {entity_type.value}",
                    context=context,
                    original_exception=e
                )

            logger.debug(f"Fetched {len(records)} {entity_type.value} from page {page}")

            for record in records:
                key = (record.created_at, record.id)
                if record.created_at < since or (until is not None and record.created_at > until):
                    raise ExtractionError(
                        "Source returned a record outside the extraction window",
                        context={**context, "record_id": record.id, "created_at": record.created_at}
                    )
                if last_key is not None and key <= last_key:
                    raise ExtractionError(
                        "Source returned records out of order",
                        context={**context, "record_id": record.id, "created_at": record.created_at}
                    )
                last_key = key
                total += 1
                yield record

            if len(records) < self.batch_size:
                break
            after = last_key

        logger.info(f"Extracted {total} {entity_type.value} since {since.isoformat()} ({page} pages)")

    async def lookup_auxiliary(
        self,
        entity_type: EntityType,
        records: Sequence[AnySourceRecord],
        deadline: Optional[float] = None
    ) -> AuxiliaryLookup:
        """
        Fetch the aggregates the transformer needs for a batch.

        Ids are sent in slices of `batch_size`; per-slice results are merged.

        Raises:
            ExtractionError: Auxiliary query failure
            PipelineTimeoutError: Deadline exceeded
        """
        ids = [record.id for record in records]
        if not ids or entity_type == EntityType.PAYMENTS:
            return AuxiliaryLookup()

        merged = {}
        for start in range(0, len(ids), self.batch_size):
            chunk = ids[start:start + self.batch_size]
            context = {"entity_type": entity_type.value, "records": len(ids), "offset": start}
            try:
                timeout = remaining_time(deadline, f"auxiliary lookup for {entity_type.value}")
                merged.update(await asyncio.wait_for(self._lookup_query(entity_type, chunk), timeout))
            except PipelineTimeoutError:
                raise
            except asyncio.TimeoutError as e:
                raise PipelineTimeoutError(
                    "Deadline exceeded during auxiliary lookup",
                    context=context,
                    original_exception=e
                )
            except Exception as e:
                raise ExtractionError(
                    f"Auxiliary lookup failed for {entity_type.value}",
                    context=context,
                    original_exception=e
                )

        if entity_type == EntityType.USERS:
            return AuxiliaryLookup(user_stats=merged)
        if entity_type == EntityType.RESTAURANTS:
            return AuxiliaryLookup(restaurant_order_counts=merged)
        return AuxiliaryLookup(coupon_discounts=merged)

    def _lookup_query(self, entity_type: EntityType, ids: List[int]):
        if entity_type == EntityType.USERS:
            return self.source.user_order_stats(ids, self.completed_order_status)
        if entity_type == EntityType.RESTAURANTS:
            return self.source.restaurant_order_counts(ids)
        return self.source.coupon_discounts(ids)
