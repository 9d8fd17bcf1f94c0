"""
Pytest configuration and fixtures
"""

import asyncio
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

import pytest
import pytest_asyncio
from sqlalchemy import insert

from analytics_etl.config import PipelineConfig
from analytics_etl.extractors.base import OperationalSource
from analytics_etl.loaders.warehouse import SQLWarehouseWriter, WarehouseWriter
from analytics_etl.run_recorder import RunRecorder
from analytics_etl.runner import PipelineRunner, build_runner
from analytics_etl.watermark import WatermarkStore
from core.database import create_engine, create_session_factory
from models.base import Base, EntityType
from models.operational import operational_metadata
from schemas.source import (
    OrderRecord, UserRecord, RestaurantRecord, PaymentRecord, UserOrderStats
)

NOW = datetime(2024, 3, 15, 12, 0, 0)


# ============================================================================
# Databases (SQLite files, one per test)
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def warehouse_engine(tmp_path):
    """Create the warehouse schema in a throwaway SQLite database"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'warehouse.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def warehouse_sessions(warehouse_engine):
    return create_session_factory(warehouse_engine)


@pytest_asyncio.fixture(scope="function")
async def source_engine(tmp_path):
    """Create the operational tables in a throwaway SQLite database"""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'source.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(operational_metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def source_sessions(source_engine):
    return create_session_factory(source_engine)


@pytest.fixture
def seed_source(source_engine):
    """Insert rows into an operational table"""
    async def seed(table, rows: List[dict]):
        async with source_engine.begin() as conn:
            await conn.execute(insert(table), rows)
    return seed


# ============================================================================
# Time and configuration
# ============================================================================

@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def pipeline_config():
    """Defaults with a short retry delay and serialized jobs (SQLite writer lock)"""
    return PipelineConfig(retry_delay=0.0, max_concurrent_jobs=1)


@pytest.fixture
def watermark_store(warehouse_sessions, clock):
    return WatermarkStore(warehouse_sessions, default_lookback=timedelta(hours=24), clock=clock)


# ============================================================================
# In-memory source and warehouse
# ============================================================================

class FakeOperationalSource(OperationalSource):
    """
    In-memory operational source honouring the keyset paging contract.

    `failing` holds query names ("orders", "user_order_stats", ...) that raise.
    """

    def __init__(
        self,
        orders: Sequence[OrderRecord] = (),
        users: Sequence[UserRecord] = (),
        restaurants: Sequence[RestaurantRecord] = (),
        payments: Sequence[PaymentRecord] = (),
        user_stats: Optional[Dict[int, UserOrderStats]] = None,
        restaurant_counts: Optional[Dict[int, int]] = None,
        coupons: Optional[Dict[int, float]] = None,
        failing: Sequence[str] = (),
        delay: float = 0.0
    ):
        self.records = {
            EntityType.ORDERS: list(orders),
            EntityType.USERS: list(users),
            EntityType.RESTAURANTS: list(restaurants),
            EntityType.PAYMENTS: list(payments),
        }
        self.user_stats = user_stats or {}
        self.restaurant_counts = restaurant_counts or {}
        self.coupons = coupons or {}
        self.failing = set(failing)
        self.delay = delay
        self.calls: List[str] = []

    async def _page(self, name, entity_type, since, until, after, limit):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.failing:
            raise ConnectionError(f"{name} query failed")

        matching = sorted(self.records[entity_type], key=lambda r: (r.created_at, r.id))
        matching = [r for r in matching if r.created_at >= since]
        if until is not None:
            matching = [r for r in matching if r.created_at <= until]
        if after is not None:
            matching = [r for r in matching if (r.created_at, r.id) > after]
        return matching[:limit]

    async def query_orders(self, since, until, after, limit):
        return await self._page("orders", EntityType.ORDERS, since, until, after, limit)

    async def query_users(self, since, until, after, limit):
        return await self._page("users", EntityType.USERS, since, until, after, limit)

    async def query_restaurants(self, since, until, after, limit):
        return await self._page("restaurants", EntityType.RESTAURANTS, since, until, after, limit)

    async def query_payments(self, since, until, after, limit):
        return await self._page("payments", EntityType.PAYMENTS, since, until, after, limit)

    async def user_order_stats(self, user_ids, completed_status):
        self.calls.append("user_order_stats")
        if "user_order_stats" in self.failing:
            raise ConnectionError("user_order_stats query failed")
        return {uid: self.user_stats[uid] for uid in user_ids if uid in self.user_stats}

    async def restaurant_order_counts(self, restaurant_ids):
        self.calls.append("restaurant_order_counts")
        if "restaurant_order_counts" in self.failing:
            raise ConnectionError("restaurant_order_counts query failed")
        return {rid: self.restaurant_counts[rid] for rid in restaurant_ids if rid in self.restaurant_counts}

    async def coupon_discounts(self, order_ids):
        self.calls.append("coupon_discounts")
        if "coupon_discounts" in self.failing:
            raise ConnectionError("coupon_discounts query failed")
        return {oid: self.coupons[oid] for oid in order_ids if oid in self.coupons}


class FakeWarehouse(WarehouseWriter):
    """
    In-memory warehouse keyed by natural id (upsert semantics).

    `fail_first` makes the first N write attempts fail; `fail_chunks` makes
    every attempt at the listed chunk positions fail.
    """

    KEYS = {
        "OrderFact": "order_id",
        "UserFact": "user_id",
        "RestaurantFact": "restaurant_id",
        "PaymentFact": "transaction_id",
    }

    def __init__(self, fail_first: int = 0, fail_chunks: Sequence[int] = (), delay: float = 0.0):
        self.fail_first = fail_first
        self.fail_chunks = set(fail_chunks)
        self.delay = delay
        self.attempts = 0
        self.committed_chunks = 0
        self.rows: Dict[EntityType, Dict[int, object]] = {e: {} for e in EntityType}

    async def write_chunk(self, entity_type, facts, etl_run_id=None):
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.attempts <= self.fail_first:
            raise ConnectionError("warehouse unavailable")
        if self.committed_chunks in self.fail_chunks:
            raise ConnectionError(f"chunk {self.committed_chunks} rejected")

        for fact in facts:
            key = getattr(fact, self.KEYS[type(fact).__name__])
            self.rows[entity_type][key] = fact
        self.committed_chunks += 1
        return len(facts)


@pytest.fixture
def fake_warehouse():
    return FakeWarehouse()


# ============================================================================
# Sample records
# ============================================================================

def make_order(order_id: int, created_at: datetime, total: Optional[float] = 100000.0, **kwargs) -> OrderRecord:
    values = dict(
        id=order_id,
        created_at=created_at,
        user_id=1,
        restaurant_id=1,
        status="COMPLETED",
        total_amount=total,
        order_date=created_at,
        item_count=2,
    )
    values.update(kwargs)
    return OrderRecord(**values)


@pytest.fixture
def sample_orders():
    """Three orders, one per value category bucket of interest"""
    base = NOW - timedelta(hours=3)
    return [
        make_order(1, base, 40000.0),
        make_order(2, base + timedelta(minutes=10), 150000.0),
        make_order(3, base + timedelta(minutes=20), 310000.0),
    ]


# ============================================================================
# Runners
# ============================================================================

@pytest.fixture
def make_runner(warehouse_sessions, watermark_store, pipeline_config, clock):
    """Runner over any source; facts go to the SQLite warehouse unless given a writer"""
    def factory(source, warehouse=None, config=None):
        return PipelineRunner(
            source=source,
            warehouse=warehouse or SQLWarehouseWriter(warehouse_sessions, clock=clock),
            watermarks=watermark_store,
            config=config or pipeline_config,
            recorder=RunRecorder(warehouse_sessions, clock=clock),
            clock=clock
        )
    return factory


@pytest.fixture
def sql_runner(source_sessions, warehouse_sessions, pipeline_config, clock):
    """Runner wired to the SQLite operational and warehouse databases"""
    return build_runner(source_sessions, warehouse_sessions, pipeline_config, clock=clock)
