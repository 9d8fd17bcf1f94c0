from sqlalchemy import Column, Integer, String, Enum, DateTime, Text, Index, BigInteger
from models.base import Base, ETLStatus


class ETLWatermark(Base):
    """
    Tracks incremental extraction state per entity type.

    Purpose:
    - Resume ETL from the last successfully loaded source timestamp
    - Avoid reprocessing old data
    - Keep run statistics per entity type

    Design:
    - One row per entity type
    - last_extracted_at only moves forward, and only after a full load
    - NULL last_extracted_at means "use the default lookback"
    """
    __tablename__ = "etl_watermarks"

    id = Column(Integer, primary_key=True, autoincrement=True)

    entity_type = Column(String(50), nullable=False)
    last_extracted_at = Column(DateTime, nullable=True)

    # Statistics
    last_run_at = Column(DateTime, nullable=True, index=True)
    last_success_at = Column(DateTime, nullable=True)
    last_failure_at = Column(DateTime, nullable=True)

    total_runs = Column(Integer, default=0, nullable=False)
    total_records_processed = Column(BigInteger, default=0, nullable=False)
    last_records_processed = Column(Integer, default=0, nullable=False)

    # Status
    status = Column(Enum(ETLStatus), default=ETLStatus.PENDING, nullable=False)
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_watermark_entity_type", "entity_type", unique=True),
    )
