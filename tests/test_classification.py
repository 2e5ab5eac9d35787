import random
from collections import Counter

import pytest

from pfharness.classification import (
    band_for,
    effective_job_count,
    has_explicit_counts,
    priority_for,
    resolve_bands,
    shuffled_band_order,
)
from pfharness.model import Band, Mode, RunConfig


def test_priority_round_robin_for_twelve_jobs():
    priorities = [priority_for(n).priority for n in range(1, 13)]
    assert priorities == [1, 2, 3, 4, 5, 1, 2, 3, 4, 5, 1, 2]
    counts = Counter(priorities)
    assert [counts[p] for p in range(1, 6)] == [3, 3, 2, 2, 2]


@pytest.mark.parametrize("job_count", [0, 1, 4, 5, 12, 99, 100, 573])
def test_priority_buckets_are_balanced(job_count):
    counts = Counter(priority_for(n).priority for n in range(1, job_count + 1))
    assert sum(counts.values()) == job_count
    for p in range(1, 6):
        assert counts[p] in (job_count // 5, -(-job_count // 5))


def test_priority_rejects_zero_ordinal():
    with pytest.raises(ValueError):
        priority_for(0)


def test_band_round_robin_follows_declaration_order():
    bands = [Band("gold", 10), Band("silver", 3)]
    keys = [band_for(n, bands).fairness_key for n in range(1, 6)]
    assert keys == ["gold", "silver", "gold", "silver", "gold"]
    assert band_for(2, bands).fairness_weight == 3


def test_default_bands_used_when_none_configured():
    bands = resolve_bands(RunConfig(mode=Mode.FAIRNESS))
    assert [(b.key, b.weight) for b in bands] == [
        ("first-class", 15),
        ("business-class", 5),
        ("economy-class", 1),
    ]
    assert not has_explicit_counts(bands)


def test_explicit_counts_override_requested_job_count():
    config = RunConfig(
        mode=Mode.FAIRNESS,
        job_count=1000,
        bands=[Band("a", 10, count=3), Band("b", 1, count=4), Band("c", 5)],
    )
    assert effective_job_count(config) == 7


def test_zero_counts_do_not_switch_to_explicit_mode():
    config = RunConfig(mode=Mode.FAIRNESS, job_count=9, bands=[Band("a", 1, count=0), Band("b", 2)])
    assert effective_job_count(config) == 9


def test_priority_mode_ignores_band_counts():
    config = RunConfig(mode=Mode.PRIORITY, job_count=12, bands=[Band("a", 1, count=50)])
    assert effective_job_count(config) == 12


def test_shuffle_keeps_multiplicities():
    bands = [Band("a", 10, count=30), Band("b", 5, count=12), Band("c", 1)]
    order = shuffled_band_order(bands, random.Random(7))
    assert len(order) == 42
    assert Counter(c.fairness_key for c in order) == {"a": 30, "b": 12}


def test_shuffle_is_reproducible_with_seed():
    bands = [Band("a", 10, count=20), Band("b", 5, count=20)]
    first = shuffled_band_order(bands, random.Random(3))
    second = shuffled_band_order(bands, random.Random(3))
    assert first == second
