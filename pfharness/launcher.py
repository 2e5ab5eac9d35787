"""Sequential submission of a planned run to the execution engine."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional

from pfharness.config import Settings
from pfharness.engine.base import JobEngine
from pfharness.errors import EngineError, LaunchError
from pfharness.model import (
    FairnessClass,
    FairnessJobData,
    JobPlanEntry,
    Mode,
    PriorityJobData,
    RunConfig,
    SubmissionRequest,
)
from pfharness.planner import BatchPlanner
from pfharness.timing import Clock

logger = logging.getLogger(__name__)


@dataclass
class LaunchReport:
    id_prefix: str
    mode: Mode
    target_start_s: float
    submitted: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


class JobLauncher:
    """Submits one job per plan entry, strictly one at a time."""

    def __init__(
        self,
        engine: JobEngine,
        settings: Optional[Settings] = None,
        clock: Clock = time.time,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.engine = engine
        self.settings = settings or Settings()
        self.clock = clock
        self.rng = rng

    def build_request(self, config: RunConfig, entry: JobPlanEntry) -> SubmissionRequest:
        classification = entry.classification
        if isinstance(classification, FairnessClass):
            return SubmissionRequest(
                job_id=entry.job_id,
                kind=Mode.FAIRNESS,
                payload=FairnessJobData(
                    fairness_key=classification.fairness_key,
                    fairness_weight=classification.fairness_weight,
                    disable_fairness=config.disable_fairness,
                ),
                start_delay_s=entry.start_delay_s,
                task_queue=self.settings.task_queue_for(fairness=True),
            )
        return SubmissionRequest(
            job_id=entry.job_id,
            kind=Mode.PRIORITY,
            payload=PriorityJobData(priority=classification.priority),
            start_delay_s=entry.start_delay_s,
            task_queue=self.settings.task_queue_for(fairness=False),
        )

    def launch(self, config: Optional[RunConfig] = None) -> LaunchReport:
        """
        Plan and submit a whole run.

        Each entry is pulled from the planner only after the previous
        submission returned, so its delay reflects the time already spent.

        Raises:
            LaunchError: If the run had jobs and none of them could be submitted
        """
        planner = BatchPlanner(config, clock=self.clock, rng=self.rng)
        config = planner.config
        report = LaunchReport(id_prefix=config.id_prefix, mode=config.mode, target_start_s=planner.target_start_s)

        for entry in planner:
            request = self.build_request(config, entry)
            logger.debug(
                f"Starting {config.mode.value} job {entry.job_id} "
                f"[{entry.classification.key}:{entry.classification.weight}] delay={entry.start_delay_s:.2f}s"
            )
            try:
                self.engine.submit(request)
                report.submitted += 1
            except EngineError as e:
                logger.error(f"Failed to submit {entry.job_id}: {e}")
                report.failed += 1
                report.errors.append(str(e))

        if report.failed and not report.submitted:
            raise LaunchError(f"Failed to submit any job for run {config.id_prefix}: {report.errors[0]}")
        if report.failed:
            logger.warning(f"Run {config.id_prefix}: {report.failed} of {len(planner)} submissions failed")
        logger.info(f"Run {config.id_prefix}: submitted {report.submitted} {config.mode.value} jobs")
        return report
