"""
SQLAlchemy models for the analytics warehouse and the operational source.

Models:
    base: Base declarative class and shared enums (EntityType, ETLStatus)
    watermark: Per-entity-type incremental extraction state
    etl_run: ETL execution tracking and metrics
    facts: Order, user, restaurant and payment fact tables
    operational: Read-only Core tables of the operational database

Database Schema:
    Warehouse models inherit from Base. Fact tables are keyed by the natural
    identity of their source record so loads can upsert idempotently.

Usage:
    from models import ETLWatermark, ETLRun, OrderFactRow
    from models.base import EntityType, ETLStatus
"""

from models.base import Base, EntityType, ETLStatus
from models.watermark import ETLWatermark
from models.etl_run import ETLRun
from models.facts import OrderFactRow, UserFactRow, RestaurantFactRow, PaymentFactRow

FACT_MODELS = {
    EntityType.ORDERS: OrderFactRow,
    EntityType.USERS: UserFactRow,
    EntityType.RESTAURANTS: RestaurantFactRow,
    EntityType.PAYMENTS: PaymentFactRow,
}

__all__ = [
    "Base",
    "EntityType",
    "ETLStatus",
    "ETLWatermark",
    "ETLRun",
    "OrderFactRow",
    "UserFactRow",
    "RestaurantFactRow",
    "PaymentFactRow",
    "FACT_MODELS",
]
