"""
Custom exceptions for the analytics ETL pipeline with structured error context.

Every exception carries a context dictionary so that failures can be logged
and stored in run reports without losing the entity type, record identity or
chunk position that caused them.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    ├── TransformationError
    │   └── TransformSkip
    ├── LoadError
    │   └── LoadChunkError
    ├── WatermarkError
    ├── ConfigurationError
    └── PipelineTimeoutError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (entity type, record id, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc).replace(tzinfo=None)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": {k: _jsonable(v) for k, v in self.context.items()},
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """
    Source unreachable or a source query failed.

    Fatal for the current entity type's run; the watermark is not touched.

    Context should include:
        - entity_type: Entity type being extracted
        - since: Lower bound of the extraction window
        - page: Page number that failed (if applicable)
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class TransformSkip(TransformationError):
    """
    A single source record cannot be turned into a fact.

    Raised for missing relations or malformed required fields. It is recovered
    locally: the record is logged and excluded, the run continues.

    Context should include:
        - entity_type: Entity type of the record
        - record_id: Identity of the skipped record
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for data loading failures."""
    pass


class LoadChunkError(LoadError):
    """
    A warehouse chunk write failed after exhausting its retry attempts.

    Context should include:
        - entity_type: Entity type being loaded
        - chunk_index: Zero-based index of the chunk
        - chunk_size: Number of facts in the chunk
        - attempts: Number of attempts made
    """
    pass


# ============================================================================
# Watermark Errors
# ============================================================================

class WatermarkError(ETLException):
    """
    Exception raised when watermark persistence fails.

    Context should include:
        - entity_type: Entity type of the watermark
        - operation: Operation that failed (read, advance, record_failure)
    """
    pass


# ============================================================================
# Configuration / Runtime Errors
# ============================================================================

class ConfigurationError(ETLException):
    """Invalid pipeline configuration; raised before any I/O."""
    pass


class PipelineTimeoutError(ETLException):
    """The caller-supplied deadline expired during extraction or load."""
    pass
