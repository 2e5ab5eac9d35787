"""Synthetic job body: a fixed number of sequential steps with a fixed pause."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from pfharness.model import STEPS_PER_JOB

logger = logging.getLogger(__name__)

DEFAULT_STEP_DURATION_MS = 300
FALLBACK_STEP_DURATION_MS = 200


def pause(duration_ms: int, sleep: Callable[[float], None] = time.sleep) -> None:
    if duration_ms < 1:
        duration_ms = FALLBACK_STEP_DURATION_MS
    sleep(duration_ms / 1000.0)


def run_step(job_id: str, step_number: int, duration_ms: int = DEFAULT_STEP_DURATION_MS,
             sleep: Callable[[float], None] = time.sleep) -> str:
    """Pause, then return the log line for a completed step."""
    pause(duration_ms, sleep=sleep)
    line = f"{datetime.now().isoformat()} - Activity step [{step_number}] completed"
    logger.debug(f"{job_id}: {line}")
    return line


def run_steps(
    job_id: str,
    duration_ms: int = DEFAULT_STEP_DURATION_MS,
    on_step: Optional[Callable[[int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[str]:
    """
    Run every step of a job in order.

    Args:
        job_id: Identifier used in log lines
        duration_ms: Pause per step (values below 1ms fall back to 200ms)
        on_step: Called with the step number after each step completes
        sleep: Sleep function, replaceable in tests

    Returns:
        One result line per completed step
    """
    results: List[str] = []
    for step_number in range(1, STEPS_PER_JOB + 1):
        results.append(run_step(job_id, step_number, duration_ms, sleep=sleep))
        if on_step is not None:
            on_step(step_number)
    return results
