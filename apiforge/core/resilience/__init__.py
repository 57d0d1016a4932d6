"""Resilience Patterns

Bulk validation with bounded concurrency and error aggregation.
"""
from .batch import (
    AggregatedError,
    BatchResult,
    BatchStrategy,
    ValidationOutcome,
    validate_batch,
    validate_concurrently,
)

__all__ = [
    "AggregatedError",
    "BatchResult",
    "BatchStrategy",
    "ValidationOutcome",
    "validate_batch",
    "validate_concurrently",
]
