"""Start-time estimation for synchronized batch starts."""

from __future__ import annotations

import math
import time
from typing import Callable

from pfharness.model import Mode

Clock = Callable[[], float]

# Priority runs: ~50ms to submit each job plus a 5s buffer.
PRIORITY_SECONDS_PER_JOB = 0.05
PRIORITY_BUFFER_S = 5

# Fairness runs: ceil(0.15 * N - 15) clamped to [7, 30].
FAIRNESS_SECONDS_PER_JOB = 0.15
FAIRNESS_OFFSET_S = 15.0
FAIRNESS_MIN_S = 7
FAIRNESS_MAX_S = 30


def clamp(x: float, lo: float, hi: float) -> float:
	return max(lo, min(hi, x))


def priority_window_s(job_count: int) -> int:
	"""Whole seconds needed to submit a priority run (100 -> 10, 570 -> 33)."""
	return int(job_count * PRIORITY_SECONDS_PER_JOB + PRIORITY_BUFFER_S)


def fairness_window_s(job_count: int) -> int:
	"""Whole seconds needed to submit a fairness run (100 -> 7, 200 -> 15, 300 -> 30)."""
	scaled = math.ceil(FAIRNESS_SECONDS_PER_JOB * job_count - FAIRNESS_OFFSET_S)
	return int(clamp(scaled, FAIRNESS_MIN_S, FAIRNESS_MAX_S))


def window_s(mode: Mode, job_count: int) -> int:
	if mode is Mode.FAIRNESS:
		return fairness_window_s(job_count)
	return priority_window_s(job_count)


def target_start(mode: Mode, job_count: int, clock: Clock = time.time) -> float:
	"""Epoch seconds at which every job of the run should begin."""
	return clock() + window_s(mode, job_count)


def start_delay(target_s: float, now_s: float) -> float:
	"""Seconds from now until the target; never negative."""
	delay = target_s - now_s
	if delay < 0:
		return 0.0
	return delay
