"""
Core Module - Shared infrastructure.

Components:
- errors: exception taxonomy for degraded and failure states
- log_config: loguru sink setup
- clock: naive-UTC time helpers shared by storage and feature code
"""

from adaptive_review.core.clock import utcnow
from adaptive_review.core.errors import (
    CsvParseError,
    InferenceError,
    InsufficientDataError,
    ModelUnavailableError,
    PersistenceError,
    ReviewEngineError,
    TrainingRowError,
)
from adaptive_review.core.log_config import configure_logging

__all__ = [
    "utcnow",
    "configure_logging",
    "ReviewEngineError",
    "TrainingRowError",
    "CsvParseError",
    "InsufficientDataError",
    "ModelUnavailableError",
    "InferenceError",
    "PersistenceError",
]
