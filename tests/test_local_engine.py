import pytest

from pfharness.aggregator import ResultAggregator
from pfharness.engine.local import LocalJobEngine
from pfharness.errors import EngineError
from pfharness.executor.steps import run_steps
from pfharness.launcher import JobLauncher
from pfharness.model import FairnessJobData, Mode, PriorityJobData, RunConfig, SubmissionRequest


def priority_request(job_id, priority=1, delay=0.0):
    return SubmissionRequest(
        job_id=job_id,
        kind=Mode.PRIORITY,
        payload=PriorityJobData(priority),
        start_delay_s=delay,
        task_queue="priority-queue",
    )


@pytest.fixture
def engine():
    eng = LocalJobEngine(step_duration_ms=1, workers=3)
    try:
        yield eng
    finally:
        eng.stop()


def test_run_steps_reports_each_step():
    seen = []
    sleeps = []
    lines = run_steps("job-1", duration_ms=0, on_step=seen.append, sleep=sleeps.append)
    assert seen == [1, 2, 3, 4, 5]
    assert len(lines) == 5
    assert lines[2].endswith("Activity step [3] completed")
    # Durations below 1ms fall back to 200ms.
    assert sleeps == [0.2] * 5


def test_recorded_jobs_start_with_zero_progress():
    eng = LocalJobEngine(run_jobs=False)
    eng.submit(priority_request("run-1", priority=4, delay=30.0))
    eng.submit(priority_request("other-1"))

    records = eng.list_status("run-")
    assert [(r.job_id, r.priority, r.completed_steps) for r in records] == [("run-1", 4, 0)]


def test_duplicate_job_id_is_rejected():
    eng = LocalJobEngine(run_jobs=False)
    eng.submit(priority_request("dup-1"))
    with pytest.raises(EngineError):
        eng.submit(priority_request("dup-1"))


def test_jobs_run_to_completion(engine):
    for n in range(1, 7):
        engine.submit(priority_request(f"run-{n}", priority=(n - 1) % 5 + 1))
    assert engine.wait_idle(timeout=10)

    records = engine.list_status("run-")
    assert len(records) == 6
    assert all(r.completed_steps == 5 for r in records)
    assert len(engine.get_job("run-3").results) == 5


def test_fairness_run_end_to_end(engine):
    for n, band in enumerate(["gold"] * 4 + ["bronze"] * 2, start=1):
        engine.submit(SubmissionRequest(
            job_id=f"fair-{n}",
            kind=Mode.FAIRNESS,
            payload=FairnessJobData(band, 10 if band == "gold" else 1),
            start_delay_s=0.0,
            task_queue="fairness-queue",
        ))
    assert engine.wait_idle(timeout=10)

    results = ResultAggregator().aggregate(Mode.FAIRNESS, engine.list_status("fair-"))
    assert results.total_jobs == 6
    assert [(s.key, s.job_count) for s in results.summaries] == [("gold", 4), ("bronze", 2)]
    assert results.summaries[0].activities[-1].number_completed == 4


def test_launcher_against_local_engine(engine):
    ticks = iter(range(0, 10_000, 100))

    def late_clock():
        # Each reading is 100s after the previous one, so the start window has
        # already passed by the time the first job is submitted.
        return float(next(ticks))

    report = JobLauncher(engine, clock=late_clock).launch(RunConfig(id_prefix="late", job_count=10))
    assert report.submitted == 10
    assert engine.wait_idle(timeout=10)

    results = ResultAggregator().aggregate(Mode.PRIORITY, engine.list_status("late-"))
    assert [s.job_count for s in results.summaries] == [2, 2, 2, 2, 2]
    assert all(s.activities[-1].step_number == 5 for s in results.summaries)


def test_finished_jobs_are_evicted_after_retention():
    eng = LocalJobEngine(step_duration_ms=1, workers=2, retention_s=0)
    try:
        eng.submit(priority_request("old-1"))
        eng.submit(priority_request("old-2"))
        assert eng.wait_idle(timeout=10)
        assert eng.list_status("old-") == []
        # An evicted id can be reused.
        eng.submit(priority_request("old-1"))
        assert eng.wait_idle(timeout=10)
    finally:
        eng.stop()


def test_retention_none_keeps_finished_jobs():
    eng = LocalJobEngine(step_duration_ms=1, retention_s=None)
    try:
        eng.submit(priority_request("keep-1"))
        assert eng.wait_idle(timeout=10)
        assert [r.completed_steps for r in eng.list_status("keep-")] == [5]
    finally:
        eng.stop()


def test_step_queued_after_stop_finishes_the_job():
    eng = LocalJobEngine(step_duration_ms=1)
    eng.submit(priority_request("late-1", delay=60.0))
    eng.stop()
    eng._queue_step("late-1", 1)
    assert eng.wait_idle(timeout=1)


def test_step_rejected_by_shut_down_pool_finishes_the_job():
    eng = LocalJobEngine(step_duration_ms=1)
    eng.submit(priority_request("gone-1", delay=60.0))
    eng._pool.shutdown(wait=False)
    eng._queue_step("gone-1", 1)
    try:
        assert eng.wait_idle(timeout=1)
    finally:
        eng.stop()
