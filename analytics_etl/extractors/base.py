"""
Abstract interface to the operational (food-ordering) system
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from schemas.source import (
    OrderRecord, UserRecord, RestaurantRecord, PaymentRecord, UserOrderStats
)

# Keyset cursor: (created_at, id) of the last record already returned
Cursor = Tuple[datetime, int]


class OperationalSource(ABC):
    """
    Read-only access to operational records.

    Every `query_*` method must return records with `created_at >= since`
    (and `<= until` when given), strictly after `after` in (created_at, id)
    order, sorted ascending by (created_at, id), at most `limit` rows.
    """

    @abstractmethod
    async def query_orders(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[OrderRecord]:
        pass

    @abstractmethod
    async def query_users(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[UserRecord]:
        pass

    @abstractmethod
    async def query_restaurants(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[RestaurantRecord]:
        pass

    @abstractmethod
    async def query_payments(
        self, since: datetime, until: Optional[datetime], after: Optional[Cursor], limit: int
    ) -> List[PaymentRecord]:
        pass

    @abstractmethod
    async def user_order_stats(
        self, user_ids: Sequence[int], completed_status: str
    ) -> Dict[int, UserOrderStats]:
        """
        Order count, completed spend and last order date per user.

        Users without orders may be absent from the result.
        """
        pass

    @abstractmethod
    async def restaurant_order_counts(self, restaurant_ids: Sequence[int]) -> Dict[int, int]:
        """Order count per restaurant; restaurants without orders may be absent"""
        pass

    @abstractmethod
    async def coupon_discounts(self, order_ids: Sequence[int]) -> Dict[int, float]:
        """Total active coupon discount per order; orders without coupons may be absent"""
        pass
