from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Float, Integer, Text, Index, Uuid
from models.base import Base, ETLStatus, JSONType


class ETLRun(Base):
    """
    Tracks metadata for each entity-type job of a pipeline run.

    Purpose:
    - Audit trail of all ETL runs
    - Performance monitoring
    - Error tracking and debugging
    """
    __tablename__ = "etl_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    run_id = Column(Uuid(as_uuid=True), nullable=False, index=True)

    entity_type = Column(String(50), nullable=False, index=True)

    status = Column(Enum(ETLStatus), default=ETLStatus.PENDING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    records_extracted = Column(Integer, default=0)
    records_transformed = Column(Integer, default=0)
    records_skipped = Column(Integer, default=0)
    records_loaded = Column(Integer, default=0)
    records_failed = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    error_details = Column(JSONType, nullable=True)

    # Configuration snapshot
    config_snapshot = Column(JSONType, nullable=True)

    # Watermark info
    watermark_before = Column(DateTime, nullable=True)
    watermark_after = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_etl_run_entity_started", "entity_type", "started_at"),
        Index("idx_etl_run_status", "status", "started_at"),
    )
