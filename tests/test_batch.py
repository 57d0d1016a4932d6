"""Bulk validation on a worker pool."""
from __future__ import annotations

import asyncio
import time

import pytest

from apiforge.core.resilience import BatchStrategy, validate_batch, validate_concurrently
from apiforge.core.validation import string


@pytest.fixture
def not_invalid():
    return string().custom(lambda v: "value is invalid" if v == "invalid" else None).required()


def test_concurrent_bulk_validation_counts(not_invalid):
    items = ["invalid" if i % 100 == 0 else f"item-{i}" for i in range(5000)]
    
    start = time.perf_counter()
    outcomes = validate_concurrently(not_invalid, items, workers=50)
    elapsed = time.perf_counter() - start
    
    assert len(outcomes) == 5000
    assert sum(1 for o in outcomes if not o.valid) == 50
    assert [o.index for o in outcomes] == list(range(5000))
    assert all(o.error.message == "value is invalid" for o in outcomes if not o.valid)
    assert elapsed < 30


def test_workers_must_be_positive(not_invalid):
    with pytest.raises(ValueError):
        validate_concurrently(not_invalid, ["a"], workers=0)


def test_async_collect_all(not_invalid):
    items = ["a", "invalid", "b", "invalid"]
    batch = asyncio.run(validate_batch(not_invalid, items, max_concurrent=2))
    assert batch.valid_count == 2
    assert batch.invalid_count == 2
    assert batch.skipped_count == 0
    error = batch.to_result().unwrap_err()
    assert error.count == 2
    app_error = error.to_app_error()
    assert app_error.metadata["failed_indices"] == [1, 3]


def test_async_fail_fast_stops_scheduling(not_invalid):
    items = ["invalid"] + [f"item-{i}" for i in range(20)]
    batch = asyncio.run(validate_batch(not_invalid, items, max_concurrent=1, strategy=BatchStrategy.FAIL_FAST))
    assert batch.invalid_count == 1
    assert batch.skipped_count == 20
    assert batch.to_result().is_err()


def test_async_all_valid(not_invalid):
    batch = asyncio.run(validate_batch(not_invalid, ["a", "b"]))
    assert batch.to_result().unwrap() == 2
