"""In-process job engine.

Jobs wait for their start delay, then run their steps on a bounded thread
pool. Each step is queued separately so that concurrently started jobs
interleave the way activities do on a shared task queue. Ordering between
classes is plain FIFO: this engine tags jobs but does not enforce priority or
fairness.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pfharness.engine.base import JobEngine
from pfharness.errors import EngineError
from pfharness.executor.steps import DEFAULT_STEP_DURATION_MS, run_step
from pfharness.model import (
    ATTR_ACTIVITIES_COMPLETED,
    STEPS_PER_JOB,
    JobStatusRecord,
    SubmissionRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_S = 3600.0


@dataclass
class LocalJob:
    job_id: str
    handle: str
    task_queue: str
    attributes: Dict[str, Any]
    due_at: float
    completed_steps: int = 0
    results: List[str] = field(default_factory=list)
    finished_at: Optional[float] = None


class LocalJobEngine(JobEngine):
    name = "local"

    def __init__(
        self,
        step_duration_ms: int = DEFAULT_STEP_DURATION_MS,
        workers: int = 5,
        run_jobs: bool = True,
        retention_s: Optional[float] = DEFAULT_RETENTION_S,
    ) -> None:
        """
        Args:
            step_duration_ms: Pause of every job step
            workers: Maximum number of steps running at once
            run_jobs: When False jobs are only recorded, never executed
            retention_s: Seconds a finished job stays visible to list_status;
                None keeps every job
        """
        self.step_duration_ms = step_duration_ms
        self.workers = max(1, int(workers))
        self.run_jobs = run_jobs
        self.retention_s = retention_s

        self._lock = threading.RLock()
        self._cond = threading.Condition(self._lock)
        self._jobs: Dict[str, LocalJob] = {}
        self._pending: List[Tuple[float, int, str]] = []
        self._seq = itertools.count()
        self._unfinished = 0
        self._stop_event = threading.Event()
        self._dispatcher: Optional[threading.Thread] = None
        self._pool: Optional[ThreadPoolExecutor] = None

    # -------- lifecycle --------

    def _ensure_started(self) -> None:
        if self._dispatcher and self._dispatcher.is_alive():
            return
        self._stop_event.clear()
        self._pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="pf-step")
        self._dispatcher = threading.Thread(target=self._dispatch_loop, name="PFLocalDispatch", daemon=True)
        self._dispatcher.start()

    def stop(self) -> None:
        self._stop_event.set()
        with self._cond:
            self._cond.notify_all()
        if self._dispatcher:
            self._dispatcher.join(timeout=2.0)
        if self._pool:
            self._pool.shutdown(wait=False, cancel_futures=True)

    close = stop

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted job has finished all of its steps."""
        with self._cond:
            return self._cond.wait_for(lambda: self._unfinished == 0, timeout=timeout)

    # -------- engine contract --------

    def submit(self, request: SubmissionRequest) -> str:
        with self._lock:
            self._evict_expired()
            if request.job_id in self._jobs:
                raise EngineError(f"job '{request.job_id}' already exists")
            job = LocalJob(
                job_id=request.job_id,
                handle=f"run-{uuid.uuid4().hex[:12]}",
                task_queue=request.task_queue,
                attributes=request.search_attributes(),
                due_at=time.monotonic() + max(0.0, request.start_delay_s),
            )
            self._jobs[job.job_id] = job
            if not self.run_jobs:
                return job.handle
            self._unfinished += 1
            self._ensure_started()
            heapq.heappush(self._pending, (job.due_at, next(self._seq), job.job_id))
            self._cond.notify_all()
        logger.debug(f"Accepted {job.job_id} on {job.task_queue}, delay={request.start_delay_s:.2f}s")
        return job.handle

    def list_status(self, id_prefix: str) -> List[JobStatusRecord]:
        with self._lock:
            self._evict_expired()
            snapshot = [
                (job.job_id, {**job.attributes, ATTR_ACTIVITIES_COMPLETED: job.completed_steps})
                for job in self._jobs.values()
                if job.job_id.startswith(id_prefix)
            ]
        return [JobStatusRecord.from_attributes(job_id, attrs) for job_id, attrs in snapshot]

    def get_job(self, job_id: str) -> Optional[LocalJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def _evict_expired(self) -> None:
        # Caller holds self._lock.
        if self.retention_s is None:
            return
        cutoff = time.monotonic() - self.retention_s
        expired = [
            job_id for job_id, job in self._jobs.items()
            if job.finished_at is not None and job.finished_at <= cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} finished jobs")

    # -------- execution --------

    def _dispatch_loop(self) -> None:
        while not self._stop_event.is_set():
            with self._cond:
                if not self._pending:
                    self._cond.wait(timeout=0.5)
                    continue
                due_at, _, job_id = self._pending[0]
                wait_s = due_at - time.monotonic()
                if wait_s > 0:
                    self._cond.wait(timeout=wait_s)
                    continue
                heapq.heappop(self._pending)
            self._queue_step(job_id, 1)

    def _queue_step(self, job_id: str, step_number: int) -> None:
        pool = self._pool
        if self._stop_event.is_set() or pool is None:
            self._finish(job_id)
            return
        try:
            pool.submit(self._run_step, job_id, step_number)
        except RuntimeError as e:
            # The pool was shut down between the check and the submit.
            logger.warning(f"Dropped step {step_number} of {job_id}: {e}")
            self._finish(job_id)

    def _run_step(self, job_id: str, step_number: int) -> None:
        try:
            line = run_step(job_id, step_number, self.step_duration_ms)
        except Exception as e:
            # Step failures are not retried; the job simply stops progressing.
            logger.error(f"Step {step_number} of {job_id} failed: {e}")
            self._finish(job_id)
            return
        with self._lock:
            job = self._jobs[job_id]
            job.completed_steps = step_number
            job.results.append(line)
        if step_number < STEPS_PER_JOB:
            self._queue_step(job_id, step_number + 1)
        else:
            self._finish(job_id)

    def _finish(self, job_id: str) -> None:
        with self._cond:
            job = self._jobs.get(job_id)
            if job is not None:
                job.finished_at = time.monotonic()
            self._unfinished -= 1
            self._cond.notify_all()
        logger.debug(f"Job {job_id} finished")
