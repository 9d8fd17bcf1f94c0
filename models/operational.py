"""
Read-only mirror of the operational (food-ordering) tables.

Only the columns the pipeline reads are declared. These tables live in a
separate MetaData so that warehouse schema creation never touches them.
"""

from sqlalchemy import (
    MetaData, Table, Column, BigInteger, Boolean, String, DateTime, Float, Integer
)

operational_metadata = MetaData()

users = Table(
    "users",
    operational_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("role", String(20), nullable=False),
    Column("is_active", Boolean, nullable=False),
    Column("created_at", DateTime, nullable=False),
)

restaurants = Table(
    "restaurants",
    operational_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("name", String(200)),
    Column("address", String(500)),
    Column("category", String(100)),
    Column("created_at", DateTime, nullable=False),
)

orders = Table(
    "orders",
    operational_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("customer_id", BigInteger),
    Column("restaurant_id", BigInteger),
    Column("total_amount", Float),
    Column("status", String(30), nullable=False),
    Column("order_date", DateTime),
    Column("actual_delivery_time", DateTime),
    Column("created_at", DateTime, nullable=False),
)

order_items = Table(
    "order_items",
    operational_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("order_id", BigInteger, nullable=False),
    Column("quantity", Integer),
)

coupon_usage = Table(
    "coupon_usage",
    operational_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("order_id", BigInteger),
    Column("discount_amount", Float),
    Column("is_active", Boolean),
)

transactions = Table(
    "transactions",
    operational_metadata,
    Column("id", BigInteger, primary_key=True),
    Column("user_id", BigInteger),
    Column("order_id", BigInteger),
    Column("amount", Float),
    Column("payment_method", String(30)),
    Column("status", String(20), nullable=False),
    Column("created_at", DateTime, nullable=False),
)
