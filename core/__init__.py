"""
Core utilities and configuration for the analytics ETL system.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities
    clock: UTC clock and deadline helpers

Usage:
    from core.config import settings
    from core.database import create_engine, create_session_factory
    from core.exceptions import ExtractionError, LoadChunkError
    from core.logging import setup_logging
"""

from core.config import settings
from core.logging import setup_logging
from core.exceptions import (
    ETLException,
    ExtractionError,
    TransformationError,
    TransformSkip,
    LoadError,
    LoadChunkError,
    WatermarkError,
    ConfigurationError,
    PipelineTimeoutError,
)

__all__ = [
    "settings",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "TransformationError",
    "TransformSkip",
    "LoadError",
    "LoadChunkError",
    "WatermarkError",
    "ConfigurationError",
    "PipelineTimeoutError",
]
