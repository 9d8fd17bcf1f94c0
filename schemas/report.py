"""
Pydantic schemas for pipeline run reports
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.base import ETLStatus
from schemas.facts import Skipped


class PipelinePhase(str, enum.Enum):
    """Per-entity-type job states"""
    IDLE = "IDLE"
    EXTRACTING = "EXTRACTING"
    TRANSFORMING = "TRANSFORMING"
    LOADING = "LOADING"
    WATERMARK_ADVANCED = "WATERMARK_ADVANCED"
    FAILED = "FAILED"


class EntityRunReport(BaseModel):
    """
    Outcome of one entity type's Extract → Transform → Load job.

    `status` is SUCCESS or FAILED; `phase` records where the job stopped
    (`failed_phase` holds the phase that failed).
    """

    entity_type: str
    status: ETLStatus = ETLStatus.PENDING
    phase: PipelinePhase = PipelinePhase.IDLE
    failed_phase: Optional[PipelinePhase] = None
    dry_run: bool = False

    extracted: int = 0
    transformed: int = 0
    skipped: int = 0
    loaded: int = 0
    failed: int = 0

    watermark_before: Optional[datetime] = None
    new_watermark: Optional[datetime] = None
    max_source_timestamp: Optional[datetime] = None

    skips: List[Skipped] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = None
    duration_seconds: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ETLStatus.SUCCESS


class RunReport(BaseModel):
    """Aggregated report for one `run_pipeline` invocation"""

    run_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    started_at: datetime
    completed_at: Optional[datetime] = None
    dry_run: bool = False
    entities: Dict[str, EntityRunReport] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        """True when every entity type job succeeded"""
        return all(report.succeeded for report in self.entities.values())

    @property
    def failed_entity_types(self) -> List[str]:
        return [name for name, report in self.entities.items() if not report.succeeded]

    @property
    def processing_seconds(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def success_rate(self) -> float:
        """Loaded facts as a percentage of extracted records"""
        extracted = sum(r.extracted for r in self.entities.values())
        loaded = sum(r.loaded for r in self.entities.values())
        if extracted > 0:
            return loaded / extracted * 100
        return 0.0

    def throughput(self) -> float:
        """Transformed records per second over the whole run"""
        transformed = sum(r.transformed for r in self.entities.values())
        seconds = self.processing_seconds
        if seconds and transformed > 0:
            return transformed / seconds
        return 0.0

    def summary(self) -> str:
        lines = [
            "ETL Process Summary:",
            f"Status: {'SUCCESS' if self.succeeded else 'FAILED'}",
            f"Processing Time: {self.processing_seconds or 0.0:.3f} s",
            f"Success Rate: {self.success_rate():.2f}%",
            f"Overall Throughput: {self.throughput():.2f} records/sec",
        ]
        for name, report in self.entities.items():
            line = (
                f"  {name}: {report.status.value} extracted={report.extracted} "
                f"transformed={report.transformed} skipped={report.skipped} "
                f"loaded={report.loaded} failed={report.failed}"
            )
            if report.error:
                line += f" error={report.error.get('message')}"
            lines.append(line)
        return "\n".join(lines)
