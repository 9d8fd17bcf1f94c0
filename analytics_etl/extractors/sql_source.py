"""
Operational source backed by the food-ordering database (SQLAlchemy async)
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence
import logging

from sqlalchemy import and_, case, func, or_, select, Table
from sqlalchemy.ext.asyncio import async_sessionmaker

from analytics_etl.extractors.base import Cursor, OperationalSource
from models.operational import (
    coupon_usage, order_items, orders, restaurants, transactions, users
)
from schemas.source import (
    OrderRecord, UserRecord, RestaurantRecord, PaymentRecord, UserOrderStats
)

logger = logging.getLogger(__name__)


def _window(table: Table, since: datetime, until: Optional[datetime], after: Optional[Cursor]):
    """WHERE clause for one keyset page of an extraction window"""
    clauses = [table.c.created_at >= since]
    if until is not None:
        clauses.append(table.c.created_at <= until)
    if after is not None:
        last_created_at, last_id = after
        clauses.append(
            or_(
                table.c.created_at > last_created_at,
                and_(table.c.created_at == last_created_at, table.c.id > last_id)
            )
        )
    return and_(*clauses)


class SQLOperationalSource(OperationalSource):
    """
    Reads the operational tables declared in `models.operational`.

    Each query runs in its own short-lived session; no ORM objects or
    session state are handed back to the pipeline.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _fetch(self, stmt):
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.mappings().all()

    async def query_orders(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[OrderRecord]:
        item_counts = (
            select(order_items.c.order_id, func.count(order_items.c.id).label("item_count"))
            .group_by(order_items.c.order_id)
            .subquery()
        )
        stmt = (
            select(orders, func.coalesce(item_counts.c.item_count, 0).label("item_count"))
            .outerjoin(item_counts, item_counts.c.order_id == orders.c.id)
            .where(_window(orders, since, until, after))
            .order_by(orders.c.created_at, orders.c.id)
            .limit(limit)
        )
        rows = await self._fetch(stmt)
        return [
            OrderRecord(
                id=row["id"],
                created_at=row["created_at"],
                user_id=row["customer_id"],
                restaurant_id=row["restaurant_id"],
                status=row["status"],
                total_amount=row["total_amount"],
                order_date=row["order_date"],
                actual_delivery_time=row["actual_delivery_time"],
                item_count=row["item_count"],
            )
            for row in rows
        ]

    async def query_users(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[UserRecord]:
        stmt = (
            select(users)
            .where(_window(users, since, until, after))
            .order_by(users.c.created_at, users.c.id)
            .limit(limit)
        )
        rows = await self._fetch(stmt)
        return [
            UserRecord(
                id=row["id"],
                created_at=row["created_at"],
                role=row["role"],
                is_active=bool(row["is_active"]),
            )
            for row in rows
        ]

    async def query_restaurants(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[RestaurantRecord]:
        stmt = (
            select(restaurants)
            .where(_window(restaurants, since, until, after))
            .order_by(restaurants.c.created_at, restaurants.c.id)
            .limit(limit)
        )
        rows = await self._fetch(stmt)
        return [
            RestaurantRecord(
                id=row["id"],
                created_at=row["created_at"],
                name=row["name"],
                address=row["address"],
                category=row["category"],
            )
            for row in rows
        ]

    async def query_payments(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[PaymentRecord]:
        stmt = (
            select(transactions)
            .where(_window(transactions, since, until, after))
            .order_by(transactions.c.created_at, transactions.c.id)
            .limit(limit)
        )
        rows = await self._fetch(stmt)
        return [
            PaymentRecord(
                id=row["id"],
                created_at=row["created_at"],
                user_id=row["user_id"],
                order_id=row["order_id"],
                amount=row["amount"],
                payment_method=row["payment_method"],
                status=row["status"],
            )
            for row in rows
        ]

    async def user_order_stats(
        self, user_ids: Sequence[int], completed_status: str
    ) -> Dict[int, UserOrderStats]:
        if not user_ids:
            return {}
        completed_spend = func.sum(
            case((orders.c.status == completed_status, orders.c.total_amount), else_=None)
        )
        stmt = (
            select(
                orders.c.customer_id.label("user_id"),
                func.count(orders.c.id).label("total_orders"),
                func.coalesce(completed_spend, 0.0).label("total_spent"),
                func.max(orders.c.order_date).label("last_order_date"),
            )
            .where(orders.c.customer_id.in_(list(user_ids)))
            .group_by(orders.c.customer_id)
        )
        rows = await self._fetch(stmt)
        return {
            row["user_id"]: UserOrderStats(
                user_id=row["user_id"],
                total_orders=row["total_orders"],
                total_spent=float(row["total_spent"] or 0.0),
                last_order_date=row["last_order_date"],
            )
            for row in rows
        }

    async def restaurant_order_counts(self, restaurant_ids: Sequence[int]) -> Dict[int, int]:
        if not restaurant_ids:
            return {}
        stmt = (
            select(orders.c.restaurant_id, func.count(orders.c.id).label("total_orders"))
            .where(orders.c.restaurant_id.in_(list(restaurant_ids)))
            .group_by(orders.c.restaurant_id)
        )
        rows = await self._fetch(stmt)
        return {row["restaurant_id"]: row["total_orders"] for row in rows}

    async def coupon_discounts(self, order_ids: Sequence[int]) -> Dict[int, float]:
        if not order_ids:
            return {}
        stmt = (
            select(
                coupon_usage.c.order_id,
                func.coalesce(func.sum(coupon_usage.c.discount_amount), 0.0).label("discount"),
            )
            .where(
                coupon_usage.c.order_id.in_(list(order_ids)),
                coupon_usage.c.is_active.is_(True),
            )
            .group_by(coupon_usage.c.order_id)
        )
        rows = await self._fetch(stmt)
        return {row["order_id"]: float(row["discount"]) for row in rows}
