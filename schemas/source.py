"""
Read-only data-transfer records returned by the operational source.

Records are frozen and carry plain foreign-key ids instead of related objects,
so nothing is lazily loaded and no session state leaks between phases.
"""

from datetime import datetime
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SourceRecord(BaseModel):
    """Common shape of every operational record"""

    model_config = ConfigDict(frozen=True)

    id: int
    created_at: datetime


class OrderRecord(SourceRecord):
    user_id: Optional[int] = None
    restaurant_id: Optional[int] = None
    status: str
    total_amount: Optional[float] = None
    order_date: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    item_count: int = Field(0, ge=0)


class UserRecord(SourceRecord):
    role: str
    is_active: bool = True


class RestaurantRecord(SourceRecord):
    name: Optional[str] = None
    address: Optional[str] = None
    category: Optional[str] = None


class PaymentRecord(SourceRecord):
    user_id: Optional[int] = None
    order_id: Optional[int] = None
    amount: Optional[float] = None
    payment_method: Optional[str] = None
    status: str


AnySourceRecord = Union[OrderRecord, UserRecord, RestaurantRecord, PaymentRecord]


class UserOrderStats(BaseModel):
    """Order aggregates for one customer"""

    model_config = ConfigDict(frozen=True)

    user_id: int
    total_orders: int = 0
    total_spent: float = 0.0
    last_order_date: Optional[datetime] = None


class AuxiliaryLookup(BaseModel):
    """
    Auxiliary aggregates fetched once per entity-type batch.

    Missing keys mean "no related rows" (zero orders, no coupon).
    """

    user_stats: Dict[int, UserOrderStats] = Field(default_factory=dict)
    restaurant_order_counts: Dict[int, int] = Field(default_factory=dict)
    coupon_discounts: Dict[int, float] = Field(default_factory=dict)
