"""Per-classification progress summaries from job status records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pfharness.model import (
    PRIORITY_LEVELS,
    STEPS_PER_JOB,
    ActivitySummary,
    ClassificationSummary,
    JobStatusRecord,
    Mode,
    RunResults,
)

logger = logging.getLogger(__name__)


@dataclass
class _Group:
    key: Optional[Union[int, str]]
    weight: int = 0
    job_count: int = 0
    steps: Dict[int, int] = field(default_factory=dict)  # step number -> jobs that reached it

    def add(self, completed_steps: Optional[int]) -> None:
        self.job_count += 1
        for step in range(1, _bounded_steps(completed_steps) + 1):
            self.steps[step] = self.steps.get(step, 0) + 1

    def summary(self) -> ClassificationSummary:
        return ClassificationSummary(
            key=self.key,
            weight=self.weight,
            job_count=self.job_count,
            activities=[
                ActivitySummary(step_number=step, number_completed=self.steps[step])
                for step in sorted(self.steps)
            ],
        )


def _bounded_steps(completed_steps: Optional[int]) -> int:
    if completed_steps is None or completed_steps < 0:
        return 0
    return min(completed_steps, STEPS_PER_JOB)


class ResultAggregator:
    """Stateless; every call works on a fresh snapshot of records."""

    def aggregate(self, mode: Mode, records: Iterable[JobStatusRecord]) -> RunResults:
        if mode is Mode.FAIRNESS:
            return self.aggregate_fairness(records)
        return self.aggregate_priority(records)

    def aggregate_priority(self, records: Iterable[JobStatusRecord]) -> RunResults:
        buckets = {p: _Group(key=p) for p in range(1, PRIORITY_LEVELS + 1)}
        invalid: Optional[_Group] = None
        total = 0
        for record in records:
            total += 1
            priority = record.priority if record.priority is not None else 0
            group = buckets.get(priority)
            if group is None:
                logger.warning(f"Job {record.job_id} has out-of-range priority {record.priority!r}")
                if invalid is None:
                    invalid = _Group(key=None)
                group = invalid
            group.add(record.completed_steps)

        return RunResults(
            mode=Mode.PRIORITY,
            total_jobs=total,
            summaries=[buckets[p].summary() for p in sorted(buckets)],
            invalid=invalid.summary() if invalid is not None else None,
        )

    def aggregate_fairness(self, records: Iterable[JobStatusRecord]) -> RunResults:
        groups: Dict[Tuple[str, int], _Group] = {}
        total = 0
        for record in records:
            total += 1
            key = record.fairness_key or ""
            weight = record.fairness_weight or 0
            group = groups.get((key, weight))
            if group is None:
                group = groups[(key, weight)] = _Group(key=key, weight=weight)
            group.add(record.completed_steps)

        ordered: List[_Group] = sorted(groups.values(), key=lambda g: (-g.weight, g.key))
        return RunResults(
            mode=Mode.FAIRNESS,
            total_jobs=total,
            summaries=[g.summary() for g in ordered],
        )
