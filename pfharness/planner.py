"""Batch planner: classification plus synchronized start delay for every job."""

from __future__ import annotations

import logging
import random
import time
from typing import Iterator, List, Optional

from pfharness.classification import (
    band_for,
    effective_job_count,
    has_explicit_counts,
    priority_for,
    resolve_bands,
    shuffled_band_order,
)
from pfharness.model import Classification, JobPlanEntry, Mode, RunConfig
from pfharness.timing import Clock, start_delay, target_start

logger = logging.getLogger(__name__)


class BatchPlanner:
    """
    Produces the ordered plan for one run.

    The target start instant is fixed when the planner is created. Delays are
    computed lazily while iterating, so a caller that submits each entry before
    pulling the next one gets progressively shorter delays and all jobs
    converge on the same start instant.
    """

    def __init__(
        self,
        config: Optional[RunConfig] = None,
        clock: Clock = time.time,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config if config is not None else RunConfig()
        self.clock = clock
        self.rng = rng
        self.job_count = effective_job_count(self.config)
        self.target_start_s = target_start(self.config.mode, self.job_count, clock=clock)
        self._bands = resolve_bands(self.config) if self.config.mode is Mode.FAIRNESS else []
        # Only an explicit-count run needs its whole order up front, for the shuffle.
        self._shuffled: Optional[List[Classification]] = None
        if self._bands and has_explicit_counts(self._bands):
            self._shuffled = shuffled_band_order(self._bands, self.rng)
        logger.info(
            f"Planned run {self.config.id_prefix}: mode={self.config.mode.value} "
            f"jobs={self.job_count} start_in={self.target_start_s - self.clock():.1f}s"
        )

    def classification_for(self, ordinal: int) -> Classification:
        if self._shuffled is not None:
            return self._shuffled[ordinal - 1]
        if self.config.mode is Mode.PRIORITY:
            return priority_for(ordinal)
        return band_for(ordinal, self._bands)

    def __len__(self) -> int:
        return self.job_count

    def __iter__(self) -> Iterator[JobPlanEntry]:
        for ordinal in range(1, self.job_count + 1):
            yield JobPlanEntry(
                ordinal=ordinal,
                job_id=f"{self.config.id_prefix}-{ordinal}",
                classification=self.classification_for(ordinal),
                start_delay_s=start_delay(self.target_start_s, self.clock()),
            )

    def plan(self) -> List[JobPlanEntry]:
        return list(self)
