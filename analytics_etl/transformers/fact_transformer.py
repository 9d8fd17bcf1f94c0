"""
Transform operational records into analytical facts
"""

from typing import Any, Optional
import logging

from core.exceptions import TransformSkip
from models.base import EntityType
from schemas.facts import (
    CustomerSegment,
    OrderFact,
    PaymentFact,
    RestaurantFact,
    Skipped,
    TransformOutcome,
    Transformed,
    UserFact,
    ValueCategory,
)
from schemas.source import (
    AuxiliaryLookup,
    OrderRecord,
    PaymentRecord,
    RestaurantRecord,
    UserOrderStats,
    UserRecord,
)

logger = logging.getLogger(__name__)


def categorize_order_value(amount: Optional[float]) -> ValueCategory:
    """Bucket an order total; thresholds are exclusive upper bounds"""
    if amount is None:
        return ValueCategory.UNKNOWN
    if amount < 50000:
        return ValueCategory.LOW
    if amount < 150000:
        return ValueCategory.MEDIUM
    if amount < 300000:
        return ValueCategory.HIGH
    return ValueCategory.PREMIUM


def categorize_customer(total_orders: int) -> CustomerSegment:
    """Bucket a customer by lifetime order count"""
    if total_orders == 0:
        return CustomerSegment.NEW
    if total_orders < 5:
        return CustomerSegment.OCCASIONAL
    if total_orders < 20:
        return CustomerSegment.REGULAR
    if total_orders < 50:
        return CustomerSegment.FREQUENT
    return CustomerSegment.VIP


class FactTransformer:
    """
    Turn one source record (plus batch auxiliary aggregates) into one fact.

    Handles:
    - Derived financials for orders (tax, delivery fee, discount, net)
    - Time dimensions and delivery duration
    - Value categories and customer segments
    - Per-record failure isolation (a bad record becomes `Skipped`)

    The transformation is pure: the same record and aggregates always
    produce the same fact.
    """

    def __init__(
        self,
        tax_rate: float = 0.09,
        delivery_fee: float = 20000.0,
        default_restaurant_category: str = "Food"
    ):
        self.tax_rate = tax_rate
        self.delivery_fee = delivery_fee
        self.default_restaurant_category = default_restaurant_category

    def transform(
        self,
        entity_type: EntityType,
        record: Any,
        auxiliary: Optional[AuxiliaryLookup] = None
    ) -> Optional[TransformOutcome]:
        """
        Transform a record into a tagged outcome.

        Returns:
            Transformed with the fact, Skipped with the reason, or None when
            the record itself is None
        """
        if record is None:
            return None

        auxiliary = auxiliary or AuxiliaryLookup()
        record_id = getattr(record, "id", None)

        try:
            if entity_type == EntityType.ORDERS:
                fact = self.transform_order(record, auxiliary.coupon_discounts.get(record.id))
            elif entity_type == EntityType.USERS:
                fact = self.transform_user(record, auxiliary.user_stats.get(record.id))
            elif entity_type == EntityType.RESTAURANTS:
                fact = self.transform_restaurant(
                    record, auxiliary.restaurant_order_counts.get(record.id, 0)
                )
            elif entity_type == EntityType.PAYMENTS:
                fact = self.transform_payment(record)
            else:
                raise TransformSkip(
                    f"Unknown entity type: {entity_type}",
                    context={"record_id": record_id}
                )
        except TransformSkip as e:
            return self._skip(entity_type, record_id, e.message, type(e).__name__)
        except Exception as e:
            return self._skip(entity_type, record_id, str(e), type(e).__name__)

        return Transformed(record_id=record_id, fact=fact)

    @staticmethod
    def _skip(entity_type: EntityType, record_id: Optional[int], reason: str, error_type: str) -> Skipped:
        logger.warning(
            f"Skipping {entity_type.value} record id={record_id}: {reason}",
            extra={"error_context": {
                "entity_type": entity_type.value,
                "record_id": record_id,
                "error_type": error_type,
            }}
        )
        return Skipped(record_id=record_id, reason=reason, error_type=error_type)

    def transform_order(self, order: OrderRecord, coupon_discount: Optional[float] = None) -> OrderFact:
        if order.user_id is None:
            raise TransformSkip("Order has no customer reference", context={"record_id": order.id})
        if order.restaurant_id is None:
            raise TransformSkip("Order has no restaurant reference", context={"record_id": order.id})

        order_date = order.order_date or order.created_at
        total = order.total_amount

        delivery_minutes = None
        if order.actual_delivery_time is not None:
            elapsed = order.actual_delivery_time - order_date
            delivery_minutes = int(elapsed.total_seconds() / 60)

        return OrderFact(
            order_id=order.id,
            user_id=order.user_id,
            restaurant_id=order.restaurant_id,
            order_date=order_date,
            status=order.status,
            total_amount=total,
            tax=total * self.tax_rate if total is not None else None,
            delivery_fee=self.delivery_fee,
            discount=coupon_discount or 0.0,
            # Net equals total; the discount is reported but not subtracted
            net_amount=total,
            hour_of_day=order_date.hour,
            day_of_week=order_date.isoweekday(),
            month=order_date.month,
            year=order_date.year,
            delivery_duration_minutes=delivery_minutes,
            item_count=order.item_count,
            value_category=categorize_order_value(total),
        )

    def transform_user(self, user: UserRecord, stats: Optional[UserOrderStats] = None) -> UserFact:
        stats = stats or UserOrderStats(user_id=user.id)

        average = None
        if stats.total_orders > 0:
            average = stats.total_spent / stats.total_orders

        return UserFact(
            user_id=user.id,
            role=user.role,
            registration_date=user.created_at,
            is_active=user.is_active,
            total_orders=stats.total_orders,
            total_spent=stats.total_spent,
            average_order_value=average,
            last_order_date=stats.last_order_date,
            customer_segment=categorize_customer(stats.total_orders),
        )

    def transform_restaurant(self, restaurant: RestaurantRecord, total_orders: int = 0) -> RestaurantFact:
        if not restaurant.name:
            raise TransformSkip("Restaurant has no name", context={"record_id": restaurant.id})

        return RestaurantFact(
            restaurant_id=restaurant.id,
            name=restaurant.name,
            category=restaurant.category or self.default_restaurant_category,
            city=restaurant.address,
            registration_date=restaurant.created_at,
            total_orders=total_orders,
        )

    def transform_payment(self, payment: PaymentRecord) -> PaymentFact:
        return PaymentFact(
            transaction_id=payment.id,
            amount=payment.amount,
            payment_method=payment.payment_method,
            status=payment.status,
            transaction_date=payment.created_at,
        )
