"""
Unit tests for fact transformers
"""

import pytest
from datetime import datetime, timedelta

from analytics_etl.transformers import FactTransformer, categorize_customer, categorize_order_value
from models.base import EntityType
from schemas.facts import CustomerSegment, Skipped, Transformed, ValueCategory
from schemas.source import (
    AuxiliaryLookup, PaymentRecord, RestaurantRecord, UserOrderStats, UserRecord
)
from tests.conftest import make_order


class TestCategories:
    """Test value category and customer segment boundaries"""

    @pytest.mark.parametrize("amount, expected", [
        (None, ValueCategory.UNKNOWN),
        (0.0, ValueCategory.LOW),
        (49999.99, ValueCategory.LOW),
        (50000.0, ValueCategory.MEDIUM),
        (149999.99, ValueCategory.MEDIUM),
        (150000.0, ValueCategory.HIGH),
        (299999.99, ValueCategory.HIGH),
        (300000.0, ValueCategory.PREMIUM),
        (310000.0, ValueCategory.PREMIUM),
    ])
    def test_order_value_category_boundaries(self, amount, expected):
        assert categorize_order_value(amount) == expected

    @pytest.mark.parametrize("total_orders, expected", [
        (0, CustomerSegment.NEW),
        (1, CustomerSegment.OCCASIONAL),
        (4, CustomerSegment.OCCASIONAL),
        (5, CustomerSegment.REGULAR),
        (19, CustomerSegment.REGULAR),
        (20, CustomerSegment.FREQUENT),
        (49, CustomerSegment.FREQUENT),
        (50, CustomerSegment.VIP),
        (500, CustomerSegment.VIP),
    ])
    def test_customer_segment_boundaries(self, total_orders, expected):
        assert categorize_customer(total_orders) == expected


class TestOrderTransformation:
    """Test order fact derivation"""

    def test_transform_order(self):
        """Test financials and time dimensions"""
        transformer = FactTransformer()
        order_date = datetime(2024, 3, 11, 19, 30)  # Monday
        order = make_order(
            10,
            order_date,
            total=200000.0,
            user_id=7,
            restaurant_id=3,
            actual_delivery_time=order_date + timedelta(minutes=45, seconds=30),
            item_count=4
        )

        outcome = transformer.transform(
            EntityType.ORDERS, order, AuxiliaryLookup(coupon_discounts={10: 15000.0})
        )

        assert isinstance(outcome, Transformed)
        fact = outcome.fact
        assert fact.order_id == 10
        assert fact.user_id == 7
        assert fact.restaurant_id == 3
        assert fact.tax == pytest.approx(18000.0)
        assert fact.delivery_fee == 20000.0
        assert fact.discount == 15000.0
        assert fact.net_amount == 200000.0
        assert fact.hour_of_day == 19
        assert fact.day_of_week == 1
        assert fact.month == 3
        assert fact.year == 2024
        assert fact.delivery_duration_minutes == 45
        assert fact.item_count == 4
        assert fact.value_category == ValueCategory.HIGH

    def test_transform_order_without_total(self):
        """Test that a missing total yields UNKNOWN and no tax"""
        transformer = FactTransformer()
        order = make_order(11, datetime(2024, 3, 17, 8, 0), total=None)

        outcome = transformer.transform(EntityType.ORDERS, order)

        assert isinstance(outcome, Transformed)
        assert outcome.fact.tax is None
        assert outcome.fact.net_amount is None
        assert outcome.fact.discount == 0.0
        assert outcome.fact.day_of_week == 7
        assert outcome.fact.delivery_duration_minutes is None
        assert outcome.fact.value_category == ValueCategory.UNKNOWN

    def test_delivery_before_order_truncates_toward_zero(self):
        transformer = FactTransformer()
        order_date = datetime(2024, 3, 12, 18, 0)
        order = make_order(14, order_date, actual_delivery_time=order_date - timedelta(seconds=90))

        fact = transformer.transform(EntityType.ORDERS, order).fact

        assert fact.delivery_duration_minutes == -1

    def test_order_date_falls_back_to_created_at(self):
        transformer = FactTransformer()
        created_at = datetime(2024, 3, 12, 6, 15)
        order = make_order(12, created_at, order_date=None)

        outcome = transformer.transform(EntityType.ORDERS, order)

        assert outcome.fact.order_date == created_at
        assert outcome.fact.hour_of_day == 6

    def test_order_missing_restaurant_is_skipped(self):
        transformer = FactTransformer()
        order = make_order(5, datetime(2024, 3, 12, 6, 15), restaurant_id=None)

        outcome = transformer.transform(EntityType.ORDERS, order)

        assert isinstance(outcome, Skipped)
        assert outcome.record_id == 5
        assert outcome.error_type == "TransformSkip"
        assert "restaurant" in outcome.reason

    def test_order_missing_customer_is_skipped(self):
        transformer = FactTransformer()
        order = make_order(6, datetime(2024, 3, 12, 6, 15), user_id=None)

        outcome = transformer.transform(EntityType.ORDERS, order)

        assert isinstance(outcome, Skipped)
        assert "customer" in outcome.reason

    def test_custom_tax_rate_and_delivery_fee(self):
        transformer = FactTransformer(tax_rate=0.1, delivery_fee=15000.0)
        order = make_order(13, datetime(2024, 3, 12, 6, 15), total=100000.0)

        fact = transformer.transform(EntityType.ORDERS, order).fact

        assert fact.tax == pytest.approx(10000.0)
        assert fact.delivery_fee == 15000.0


class TestOtherEntities:
    """Test user, restaurant and payment facts"""

    def test_transform_user_with_orders(self):
        transformer = FactTransformer()
        user = UserRecord(id=7, created_at=datetime(2023, 1, 1), role="CUSTOMER", is_active=True)
        last_order = datetime(2024, 3, 1, 12, 0)
        stats = UserOrderStats(user_id=7, total_orders=8, total_spent=800000.0, last_order_date=last_order)

        outcome = transformer.transform(EntityType.USERS, user, AuxiliaryLookup(user_stats={7: stats}))

        fact = outcome.fact
        assert fact.registration_date == datetime(2023, 1, 1)
        assert fact.total_orders == 8
        assert fact.average_order_value == pytest.approx(100000.0)
        assert fact.last_order_date == last_order
        assert fact.customer_segment == CustomerSegment.REGULAR

    def test_transform_user_without_orders(self):
        """Test that a user absent from stats is a NEW customer"""
        transformer = FactTransformer()
        user = UserRecord(id=8, created_at=datetime(2024, 3, 1), role="CUSTOMER", is_active=False)

        fact = transformer.transform(EntityType.USERS, user).fact

        assert fact.total_orders == 0
        assert fact.total_spent == 0.0
        assert fact.average_order_value is None
        assert fact.is_active is False
        assert fact.customer_segment == CustomerSegment.NEW

    def test_transform_restaurant(self):
        transformer = FactTransformer()
        restaurant = RestaurantRecord(
            id=3, created_at=datetime(2023, 6, 1), name="Pho 24", address="Hanoi", category=None
        )

        outcome = transformer.transform(
            EntityType.RESTAURANTS, restaurant, AuxiliaryLookup(restaurant_order_counts={3: 42})
        )

        fact = outcome.fact
        assert fact.name == "Pho 24"
        assert fact.category == "Food"
        assert fact.city == "Hanoi"
        assert fact.total_orders == 42

    def test_restaurant_without_name_is_skipped(self):
        transformer = FactTransformer()
        restaurant = RestaurantRecord(id=4, created_at=datetime(2023, 6, 1), name="")

        outcome = transformer.transform(EntityType.RESTAURANTS, restaurant)

        assert isinstance(outcome, Skipped)
        assert outcome.record_id == 4

    def test_transform_payment(self):
        transformer = FactTransformer()
        created_at = datetime(2024, 3, 2, 9, 0)
        payment = PaymentRecord(
            id=99, created_at=created_at, amount=120000.0, payment_method="CARD", status="SUCCESS"
        )

        fact = transformer.transform(EntityType.PAYMENTS, payment).fact

        assert fact.transaction_id == 99
        assert fact.amount == 120000.0
        assert fact.payment_method == "CARD"
        assert fact.transaction_date == created_at


class TestFailureIsolation:
    """Test that bad input never raises"""

    def test_none_record_returns_none(self):
        assert FactTransformer().transform(EntityType.ORDERS, None) is None

    def test_malformed_record_is_skipped(self):
        """Test that an unexpected error becomes a skip with its type"""
        transformer = FactTransformer()
        not_an_order = UserRecord(id=1, created_at=datetime(2024, 1, 1), role="CUSTOMER")

        outcome = transformer.transform(EntityType.ORDERS, not_an_order)

        assert isinstance(outcome, Skipped)
        assert outcome.record_id == 1
        assert outcome.error_type == "AttributeError"

    def test_transformation_is_deterministic(self):
        transformer = FactTransformer()
        order = make_order(14, datetime(2024, 3, 12, 6, 15), total=60000.0)
        auxiliary = AuxiliaryLookup(coupon_discounts={14: 5000.0})

        first = transformer.transform(EntityType.ORDERS, order, auxiliary)
        second = transformer.transform(EntityType.ORDERS, order, auxiliary)

        assert first == second
