"""
Runtime options for a pipeline run
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel

from core.config import Settings, settings as default_settings
from core.exceptions import ConfigurationError


class PipelineConfig(BaseModel):
    """
    Typed pipeline options.

    Built from environment settings with `from_settings()` or directly in
    tests. `validate_options()` must pass before a runner touches any I/O.
    """

    batch_size: int = 1000
    commit_size: int = 500
    max_retry_attempts: int = 3
    retry_delay: float = 0.05  # seconds
    default_lookback: timedelta = timedelta(hours=24)
    max_concurrent_jobs: int = 4
    timeout: Optional[float] = None

    tax_rate: float = 0.09
    delivery_fee: float = 20000.0
    completed_order_status: str = "COMPLETED"
    default_restaurant_category: str = "Food"

    @classmethod
    def from_settings(cls, settings: Settings = None) -> "PipelineConfig":
        settings = settings or default_settings
        return cls(
            batch_size=settings.ETL_BATCH_SIZE,
            commit_size=settings.ETL_COMMIT_SIZE,
            max_retry_attempts=settings.ETL_MAX_RETRY_ATTEMPTS,
            retry_delay=settings.ETL_RETRY_DELAY_MS / 1000.0,
            default_lookback=timedelta(hours=settings.ETL_DEFAULT_LOOKBACK_HOURS),
            max_concurrent_jobs=settings.ETL_MAX_CONCURRENT_JOBS,
            timeout=settings.ETL_TIMEOUT_SECONDS,
            tax_rate=settings.ETL_TAX_RATE,
            delivery_fee=settings.ETL_DELIVERY_FEE,
            completed_order_status=settings.ETL_COMPLETED_ORDER_STATUS,
            default_restaurant_category=settings.ETL_DEFAULT_RESTAURANT_CATEGORY,
        )

    def validate_options(self) -> "PipelineConfig":
        """
        Check option ranges.

        Raises:
            ConfigurationError: For non-positive sizes, attempts or lookback,
                a negative retry delay or timeout
        """
        errors = {}
        for name in ("batch_size", "commit_size", "max_retry_attempts", "max_concurrent_jobs"):
            value = getattr(self, name)
            if value <= 0:
                errors[name] = value
        if self.retry_delay < 0:
            errors["retry_delay"] = self.retry_delay
        if self.default_lookback <= timedelta(0):
            errors["default_lookback"] = self.default_lookback
        if self.timeout is not None and self.timeout <= 0:
            errors["timeout"] = self.timeout
        if self.tax_rate < 0:
            errors["tax_rate"] = self.tax_rate
        if self.delivery_fee < 0:
            errors["delivery_fee"] = self.delivery_fee

        if errors:
            raise ConfigurationError(
                "Invalid pipeline configuration",
                context={"invalid_options": ", ".join(f"{k}={v}" for k, v in errors.items())}
            )
        return self

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly copy stored with each run"""
        return self.model_dump(mode="json")
