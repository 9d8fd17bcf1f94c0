"""
Pydantic schemas for analytical facts and per-record transformation outcomes
"""

import enum
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ValueCategory(str, enum.Enum):
    """Order value buckets"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    PREMIUM = "PREMIUM"
    UNKNOWN = "UNKNOWN"


class CustomerSegment(str, enum.Enum):
    """Customer buckets by lifetime order count"""
    NEW = "NEW"
    OCCASIONAL = "OCCASIONAL"
    REGULAR = "REGULAR"
    FREQUENT = "FREQUENT"
    VIP = "VIP"


class Fact(BaseModel):
    """
    Base for all facts.

    Facts are immutable once built; enum fields are stored as their plain
    string values so they can be written to the warehouse as-is.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class OrderFact(Fact):
    order_id: int
    user_id: int
    restaurant_id: int
    order_date: datetime
    status: str

    total_amount: Optional[float] = None
    tax: Optional[float] = None
    delivery_fee: float
    discount: float = 0.0
    net_amount: Optional[float] = None

    hour_of_day: int = Field(..., ge=0, le=23)
    day_of_week: int = Field(..., ge=1, le=7)
    month: int = Field(..., ge=1, le=12)
    year: int

    delivery_duration_minutes: Optional[int] = None
    item_count: int = Field(0, ge=0)
    value_category: ValueCategory


class UserFact(Fact):
    user_id: int
    role: str
    registration_date: datetime
    is_active: bool

    total_orders: int = Field(0, ge=0)
    total_spent: float = 0.0
    average_order_value: Optional[float] = None
    last_order_date: Optional[datetime] = None
    customer_segment: CustomerSegment


class RestaurantFact(Fact):
    restaurant_id: int
    name: str = Field(..., min_length=1)
    category: str
    city: Optional[str] = None
    registration_date: datetime
    total_orders: int = Field(0, ge=0)


class PaymentFact(Fact):
    transaction_id: int
    amount: Optional[float] = None
    payment_method: Optional[str] = None
    status: str
    transaction_date: datetime


AnyFact = Union[OrderFact, UserFact, RestaurantFact, PaymentFact]


# ============================================================================
# Transformation outcomes
# ============================================================================

class Transformed(BaseModel):
    """A record that produced a fact"""

    model_config = ConfigDict(frozen=True)

    record_id: int
    fact: AnyFact


class Skipped(BaseModel):
    """A record excluded from the fact set, with the reason"""

    model_config = ConfigDict(frozen=True)

    record_id: Optional[int] = None
    reason: str
    error_type: str


TransformOutcome = Union[Transformed, Skipped]
