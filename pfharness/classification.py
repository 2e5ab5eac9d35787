"""Assign a classification (priority or fairness band) to each job of a run."""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

from pfharness.model import (
    DEFAULT_BANDS,
    PRIORITY_LEVELS,
    Band,
    FairnessClass,
    Mode,
    PriorityClass,
    RunConfig,
)

logger = logging.getLogger(__name__)


def priority_for(ordinal: int) -> PriorityClass:
    """Round-robin over priorities 1..5 for a 1-based ordinal."""
    if ordinal < 1:
        raise ValueError(f"ordinal must be >= 1, got {ordinal}")
    return PriorityClass(priority=((ordinal - 1) % PRIORITY_LEVELS) + 1)


def band_for(ordinal: int, bands: Sequence[Band]) -> FairnessClass:
    """Round-robin over the configured bands in declaration order."""
    if ordinal < 1:
        raise ValueError(f"ordinal must be >= 1, got {ordinal}")
    if not bands:
        raise ValueError("at least one band is required")
    band = bands[(ordinal - 1) % len(bands)]
    return FairnessClass(fairness_key=band.key, fairness_weight=band.weight)


def resolve_bands(config: RunConfig) -> List[Band]:
    if config.bands:
        return list(config.bands)
    return [Band(key=b.key, weight=b.weight, count=b.count) for b in DEFAULT_BANDS]


def has_explicit_counts(bands: Sequence[Band]) -> bool:
    return any(b.count is not None and b.count > 0 for b in bands)


def effective_job_count(config: RunConfig) -> int:
    """Number of jobs a run will actually launch.

    In fairness mode with explicit per-band counts the sum of the counts wins
    over the requested job count.
    """
    if config.mode is Mode.PRIORITY:
        return config.job_count
    bands = resolve_bands(config)
    if not has_explicit_counts(bands):
        return config.job_count
    total = sum(b.count or 0 for b in bands)
    if total != config.job_count:
        logger.warning(
            f"Run {config.id_prefix}: explicit band counts total {total} jobs, "
            f"overriding requested numberOfWorkflows={config.job_count}"
        )
    return total


def shuffled_band_order(bands: Sequence[Band], rng: Optional[random.Random] = None) -> List[FairnessClass]:
    """Expand bands by their counts and shuffle the result.

    The shuffle only changes the order; each band appears exactly `count` times.
    """
    order = [
        FairnessClass(fairness_key=band.key, fairness_weight=band.weight)
        for band in bands
        for _ in range(band.count or 0)
    ]
    (rng or random).shuffle(order)
    return order
