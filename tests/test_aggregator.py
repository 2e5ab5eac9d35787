import json
import random

from pfharness.aggregator import ResultAggregator
from pfharness.model import JobStatusRecord, Mode


def histogram(summary):
    return {a.step_number: a.number_completed for a in summary.activities}


def fairness_records():
    return [
        JobStatusRecord("run-1", fairness_key="A", fairness_weight=10, completed_steps=3),
        JobStatusRecord("run-2", fairness_key="B", fairness_weight=20, completed_steps=1),
        JobStatusRecord("run-3", fairness_key="A", fairness_weight=10, completed_steps=5),
    ]


def test_fairness_groups_sorted_by_weight_then_key():
    results = ResultAggregator().aggregate(Mode.FAIRNESS, fairness_records())

    assert results.total_jobs == 3
    assert [(s.key, s.weight) for s in results.summaries] == [("B", 20), ("A", 10)]
    group_a = results.summaries[1]
    assert group_a.job_count == 2
    assert histogram(group_a) == {1: 2, 2: 2, 3: 2, 4: 1, 5: 1}
    assert histogram(results.summaries[0]) == {1: 1}


def test_fairness_ties_broken_by_key():
    records = [
        JobStatusRecord("r-1", fairness_key="zeta", fairness_weight=5, completed_steps=0),
        JobStatusRecord("r-2", fairness_key="alpha", fairness_weight=5, completed_steps=0),
        JobStatusRecord("r-3", fairness_key="alpha", fairness_weight=7, completed_steps=0),
    ]
    results = ResultAggregator().aggregate_fairness(records)
    assert [(s.key, s.weight) for s in results.summaries] == [("alpha", 7), ("alpha", 5), ("zeta", 5)]


def test_fairness_missing_attributes_default_to_empty_group():
    records = [JobStatusRecord("r-1"), JobStatusRecord("r-2", fairness_key="A", fairness_weight=3)]
    results = ResultAggregator().aggregate_fairness(records)
    assert results.total_jobs == 2
    empty = [s for s in results.summaries if s.key == ""][0]
    assert empty.weight == 0
    assert empty.job_count == 1
    assert empty.activities == []


def test_priority_scenario_has_fixed_five_buckets():
    records = [
        JobStatusRecord(f"p-{i}", priority=p, completed_steps=2)
        for i, p in enumerate([1, 2, 2, 5, 5], start=1)
    ]
    results = ResultAggregator().aggregate(Mode.PRIORITY, records)

    assert [s.key for s in results.summaries] == [1, 2, 3, 4, 5]
    assert [s.job_count for s in results.summaries] == [1, 2, 0, 0, 2]
    for summary in results.summaries:
        if summary.job_count:
            assert histogram(summary) == {1: summary.job_count, 2: summary.job_count}
        else:
            assert summary.activities == []
    assert results.invalid is None


def test_priority_empty_input_still_has_five_buckets():
    results = ResultAggregator().aggregate_priority([])
    assert results.total_jobs == 0
    assert [(s.key, s.job_count) for s in results.summaries] == [(p, 0) for p in range(1, 6)]


def test_out_of_range_priority_goes_to_invalid_bucket():
    records = [
        JobStatusRecord("p-1", priority=3, completed_steps=1),
        JobStatusRecord("p-2", priority=9, completed_steps=4),
        JobStatusRecord("p-3", priority=None, completed_steps=None),
    ]
    results = ResultAggregator().aggregate_priority(records)

    assert results.total_jobs == 3
    assert sum(s.job_count for s in results.summaries) == 1
    assert results.invalid.job_count == 2
    assert histogram(results.invalid) == {1: 1, 2: 1, 3: 1, 4: 1}
    assert results.to_dict()["invalidPriority"]["numberOfWorkflows"] == 2


def test_completed_steps_are_clamped():
    records = [
        JobStatusRecord("p-1", priority=1, completed_steps=8),
        JobStatusRecord("p-2", priority=1, completed_steps=-2),
    ]
    summary = ResultAggregator().aggregate_priority(records).summaries[0]
    assert summary.job_count == 2
    assert histogram(summary) == {1: 1, 2: 1, 3: 1, 4: 1, 5: 1}


def test_activities_listed_in_step_order_regardless_of_input_order():
    records = [
        JobStatusRecord("p-1", priority=1, completed_steps=1),
        JobStatusRecord("p-2", priority=1, completed_steps=4),
    ]
    summary = ResultAggregator().aggregate_priority(records).summaries[0]
    assert [a.step_number for a in summary.activities] == [1, 2, 3, 4]


def test_aggregation_is_idempotent_and_order_independent():
    records = [
        JobStatusRecord(f"f-{i}", fairness_key=k, fairness_weight=w, completed_steps=i % 6)
        for i, (k, w) in enumerate([("a", 1), ("b", 5), ("c", 5), ("a", 1), ("d", 0)] * 7)
    ]
    aggregator = ResultAggregator()
    first = json.dumps(aggregator.aggregate(Mode.FAIRNESS, records).to_dict())
    second = json.dumps(aggregator.aggregate(Mode.FAIRNESS, records).to_dict())
    shuffled = list(records)
    random.Random(5).shuffle(shuffled)
    third = json.dumps(aggregator.aggregate(Mode.FAIRNESS, shuffled).to_dict())
    assert first == second == third


def test_wire_format_matches_status_payload():
    data = ResultAggregator().aggregate(Mode.FAIRNESS, fairness_records()).to_dict()
    assert data["totalWorkflowsInTest"] == 3
    assert data["workflowsByFairness"][0] == {
        "fairnessKey": "B",
        "fairnessWeight": 20,
        "numberOfWorkflows": 1,
        "activities": [{"activityNumber": 1, "numberCompleted": 1}],
    }
    assert "invalidPriority" not in data
