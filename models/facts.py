from sqlalchemy import Column, BigInteger, Boolean, String, DateTime, Float, Integer, Index
from models.base import Base


class OrderFactRow(Base):
    """
    Denormalized order fact.

    Keyed by the operational order id so repeated loads upsert in place.
    """
    __tablename__ = "order_facts"

    order_id = Column(BigInteger, primary_key=True, autoincrement=False)
    user_id = Column(BigInteger, nullable=False, index=True)
    restaurant_id = Column(BigInteger, nullable=False, index=True)
    order_date = Column(DateTime, nullable=False, index=True)
    status = Column(String(50), nullable=False)

    # Financials
    total_amount = Column(Float, nullable=True)
    tax = Column(Float, nullable=True)
    delivery_fee = Column(Float, nullable=False)
    discount = Column(Float, nullable=False)
    net_amount = Column(Float, nullable=True)

    # Time dimensions
    hour_of_day = Column(Integer, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    delivery_duration_minutes = Column(Integer, nullable=True)
    item_count = Column(Integer, nullable=False)
    value_category = Column(String(20), nullable=False, index=True)

    # ETL tracking
    etl_run_id = Column(String(36), nullable=True)
    loaded_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_order_facts_year_month", "year", "month"),
    )


class UserFactRow(Base):
    """Denormalized customer fact with order aggregates and segment"""
    __tablename__ = "user_facts"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    role = Column(String(50), nullable=False)
    registration_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False)

    total_orders = Column(Integer, nullable=False)
    total_spent = Column(Float, nullable=False)
    average_order_value = Column(Float, nullable=True)
    last_order_date = Column(DateTime, nullable=True)
    customer_segment = Column(String(20), nullable=False, index=True)

    etl_run_id = Column(String(36), nullable=True)
    loaded_at = Column(DateTime, nullable=False)


class RestaurantFactRow(Base):
    """Denormalized restaurant fact"""
    __tablename__ = "restaurant_facts"

    restaurant_id = Column(BigInteger, primary_key=True, autoincrement=False)
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    city = Column(String(500), nullable=True)
    registration_date = Column(DateTime, nullable=False)
    total_orders = Column(Integer, nullable=False)

    etl_run_id = Column(String(36), nullable=True)
    loaded_at = Column(DateTime, nullable=False)


class PaymentFactRow(Base):
    """Payment transaction fact"""
    __tablename__ = "payment_facts"

    transaction_id = Column(BigInteger, primary_key=True, autoincrement=False)
    amount = Column(Float, nullable=True)
    payment_method = Column(String(50), nullable=True, index=True)
    status = Column(String(50), nullable=False)
    transaction_date = Column(DateTime, nullable=False, index=True)

    etl_run_id = Column(String(36), nullable=True)
    loaded_at = Column(DateTime, nullable=False)
