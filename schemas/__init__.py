"""
Pydantic schemas for data validation and serialization.

Schemas:
    source: Read-only operational records handed out by the extractor
    facts: Analytical facts, categorical enums and transformation outcomes
    report: Per-entity and per-run pipeline reports

Validation:
    Facts validate ranges of derived fields (hour of day, ISO weekday, month)
    so a malformed source record surfaces as a skipped record instead of a
    bad warehouse row.
"""

from schemas.source import (
    OrderRecord,
    UserRecord,
    RestaurantRecord,
    PaymentRecord,
    UserOrderStats,
)
from schemas.facts import (
    ValueCategory,
    CustomerSegment,
    OrderFact,
    UserFact,
    RestaurantFact,
    PaymentFact,
    Transformed,
    Skipped,
)
from schemas.report import PipelinePhase, EntityRunReport, RunReport

__all__ = [
    "OrderRecord",
    "UserRecord",
    "RestaurantRecord",
    "PaymentRecord",
    "UserOrderStats",
    "ValueCategory",
    "CustomerSegment",
    "OrderFact",
    "UserFact",
    "RestaurantFact",
    "PaymentFact",
    "Transformed",
    "Skipped",
    "PipelinePhase",
    "EntityRunReport",
    "RunReport",
]
