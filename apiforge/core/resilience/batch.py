"""Bulk Validation

Validates many values against one schema in parallel. Schemas are immutable
and validation touches no shared mutable state, so workers share a single
schema instance.

Strategies:
- Fail-fast: stop scheduling new items after the first invalid one
- Collect-all: validate every item, then report
"""
from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Sequence

from apiforge.core.config import settings
from apiforge.core.errors import AppError, ErrorCode, ErrorContext, Err, Ok, Result
from apiforge.core.logging import validation_logger
from apiforge.core.validation.errors import ValidationError
from apiforge.core.validation.schema import Schema


class BatchStrategy(Enum):
    """Available batch processing strategies."""
    FAIL_FAST = auto()      # Stop on first invalid item
    COLLECT_ALL = auto()    # Validate everything


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Result for a single item in a batch."""
    index: int
    valid: bool
    error: ValidationError | None = None
    duration_ms: float = 0.0


@dataclass
class AggregatedError:
    """Aggregated error from multiple invalid items."""
    failures: list[ValidationOutcome]
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    
    @property
    def count(self) -> int: return len(self.failures)
    
    def to_app_error(self) -> AppError:
        """Convert to single AppError for API response."""
        return AppError(code=ErrorCode.E2000_VALIDATION_GENERIC, message=self.message, context=self.context,
            metadata={"error_count": self.count, "failed_indices": [o.index for o in self.failures],
                "errors": {o.index: o.error.flatten() for o in self.failures if o.error is not None}})


@dataclass
class BatchResult:
    """Outcomes in index order plus timing."""
    outcomes: list[ValidationOutcome]
    total_duration_ms: float
    strategy: BatchStrategy
    submitted: int = 0
    
    @property
    def valid_count(self) -> int: return sum(1 for o in self.outcomes if o.valid)
    
    @property
    def invalid_count(self) -> int: return sum(1 for o in self.outcomes if not o.valid)
    
    @property
    def skipped_count(self) -> int: return self.submitted - len(self.outcomes)
    
    @property
    def failures(self) -> list[ValidationOutcome]: return [o for o in self.outcomes if not o.valid]
    
    @property
    def all_valid(self) -> bool: return self.invalid_count == 0 and self.skipped_count == 0
    
    def to_result(self) -> Result[int, AggregatedError]:
        """Ok with the number of valid items, or Err with every failure."""
        if self.all_valid:
            return Ok(self.valid_count)
        return Err(AggregatedError(failures=self.failures,
            message=f"Batch validation failed: {self.invalid_count}/{self.submitted} items invalid"))


def _validate_one(schema: Schema, index: int, item: Any) -> ValidationOutcome:
    start = time.perf_counter()
    error = schema.validate(item)
    return ValidationOutcome(index=index, valid=error is None, error=error,
        duration_ms=(time.perf_counter() - start) * 1000)


def validate_concurrently(schema: Schema, items: Iterable[Any], workers: int | None = None) -> list[ValidationOutcome]:
    """Validate every item on a bounded thread pool; outcomes come back in input order."""
    workers = settings.VALIDATION_WORKERS if workers is None else workers
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    
    values = list(items)
    start = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="apiforge-validate") as pool:
        outcomes = list(pool.map(lambda pair: _validate_one(schema, *pair), enumerate(values)))
    
    validation_logger().debug(
        "bulk_validation_complete",
        items=len(values),
        workers=workers,
        invalid=sum(1 for o in outcomes if not o.valid),
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return outcomes


async def validate_batch(
    schema: Schema,
    items: Sequence[Any],
    *,
    max_concurrent: int | None = None,
    strategy: BatchStrategy = BatchStrategy.COLLECT_ALL,
) -> BatchResult:
    """Async bulk validation bounded by a semaphore.
    
    Each item is validated in a worker thread. With FAIL_FAST, items that have
    not started when the first failure lands are skipped.
    
    Usage:
        result = await validate_batch(user_schema, payloads, max_concurrent=16)
        if result.to_result().is_err(): ...
    """
    limit = max_concurrent or settings.VALIDATION_WORKERS
    if limit < 1:
        raise ValueError(f"max_concurrent must be at least 1, got {limit}")
    
    semaphore = asyncio.Semaphore(limit)
    stop = asyncio.Event()
    start = time.perf_counter()
    
    async def run(index: int, item: Any) -> ValidationOutcome | None:
        async with semaphore:
            if stop.is_set():
                return None
            outcome = await asyncio.to_thread(_validate_one, schema, index, item)
            if not outcome.valid and strategy is BatchStrategy.FAIL_FAST:
                stop.set()
            return outcome
    
    results = await asyncio.gather(*(run(i, item) for i, item in enumerate(items)))
    outcomes = [o for o in results if o is not None]
    batch = BatchResult(outcomes=outcomes, total_duration_ms=(time.perf_counter() - start) * 1000,
        strategy=strategy, submitted=len(items))
    
    log = validation_logger()
    if batch.invalid_count:
        log.info("batch_validation_failed", items=len(items), invalid=batch.invalid_count,
            skipped=batch.skipped_count, strategy=strategy.name)
    else:
        log.debug("batch_validation_complete", items=len(items), duration_ms=round(batch.total_duration_ms, 2))
    return batch
