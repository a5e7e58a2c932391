"""Batch-size policies: concurrency cap and optimization level.

Both are pure functions of the number of requested IDs.
"""

from __future__ import annotations

from typing import Final

from metabase_mcp.retrieve.models import OptimizationLevel

FULL_PARALLEL_MAX: Final[int] = 3
MODERATE_BATCH_MAX: Final[int] = 20
MODERATE_CONCURRENCY: Final[int] = 8
CONSERVATIVE_CONCURRENCY: Final[int] = 5

STANDARD_MAX_ITEMS: Final[int] = 9
AGGRESSIVE_MAX_ITEMS: Final[int] = 24


def concurrency_limit(batch_size: int) -> int:
    """Maximum number of in-flight fetches for a batch of this size."""
    if batch_size <= FULL_PARALLEL_MAX:
        return batch_size
    if batch_size <= MODERATE_BATCH_MAX:
        return MODERATE_CONCURRENCY
    return CONSERVATIVE_CONCURRENCY


def select_optimization_level(batch_size: int) -> OptimizationLevel:
    """Pick the shaping tier for a batch; larger batches get coarser shapes."""
    if batch_size <= STANDARD_MAX_ITEMS:
        return OptimizationLevel.STANDARD
    if batch_size <= AGGRESSIVE_MAX_ITEMS:
        return OptimizationLevel.AGGRESSIVE
    return OptimizationLevel.ULTRA_MINIMAL
