from sqlalchemy import JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class EntityType(str, enum.Enum):
    """Operational entity types processed by the pipeline"""
    ORDERS = "orders"
    USERS = "users"
    RESTAURANTS = "restaurants"
    PAYMENTS = "payments"


class ETLStatus(str, enum.Enum):
    """ETL run status"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
