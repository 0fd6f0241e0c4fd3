"""Unit tests for batch chunking

Covers:
- per-batch capacity
- completeness and per-metric ordering
- boundary sizes around the 3000 point limit
- the single empty batch for empty input
"""
import random
from collections import Counter

import pytest

from conftest import make_points
from statusbridge.chunker import MAX_POINTS_PER_BATCH, chunk_metrics
from statusbridge.points import count_points


def _metric_sizes(*sizes):
    start = 1700000000
    metrics = {}
    for i, size in enumerate(sizes):
        metrics[f"metric-{i}"] = make_points(size, start=start)
        start += size
    return metrics


def _check_invariants(metrics, batches, capacity=MAX_POINTS_PER_BATCH):
    # capacity
    for batch in batches:
        assert count_points(batch) <= capacity

    # completeness
    produced = Counter((mid, p) for batch in batches for mid, points in batch.items() for p in points)
    expected = Counter((mid, p) for mid, points in metrics.items() for p in points)
    assert produced == expected

    # per-metric order across batches
    for mid, points in metrics.items():
        rebuilt = [p for batch in batches for p in batch.get(mid, [])]
        assert rebuilt == points


class TestChunkMetrics:

    def test_empty_input_yields_one_empty_batch(self):
        assert chunk_metrics({}) == [{}]

    def test_metrics_without_points_yield_one_empty_batch(self):
        assert chunk_metrics({"a": [], "b": []}) == [{}]

    def test_exactly_capacity_is_one_batch(self):
        metrics = _metric_sizes(3000)
        batches = chunk_metrics(metrics)
        assert len(batches) == 1
        assert len(batches[0]["metric-0"]) == 3000

    def test_one_over_capacity_is_two_batches(self):
        metrics = _metric_sizes(3001)
        batches = chunk_metrics(metrics)
        assert [count_points(b) for b in batches] == [3000, 1]
        _check_invariants(metrics, batches)

    def test_small_metrics_share_a_batch(self):
        metrics = _metric_sizes(10, 20, 30)
        batches = chunk_metrics(metrics)
        assert len(batches) == 1
        assert {mid: len(p) for mid, p in batches[0].items()} == {"metric-0": 10, "metric-1": 20, "metric-2": 30}

    def test_metric_split_across_consecutive_batches(self):
        metrics = _metric_sizes(2000, 2500)
        batches = chunk_metrics(metrics)
        assert [count_points(b) for b in batches] == [3000, 1500]
        assert len(batches[0]["metric-1"]) == 1000
        assert len(batches[1]["metric-1"]) == 1500
        assert "metric-0" not in batches[1]
        _check_invariants(metrics, batches)

    def test_large_metric_spans_many_batches(self):
        metrics = _metric_sizes(7500)
        batches = chunk_metrics(metrics)
        assert [count_points(b) for b in batches] == [3000, 3000, 1500]
        _check_invariants(metrics, batches)

    def test_custom_capacity(self):
        metrics = _metric_sizes(3, 4)
        batches = chunk_metrics(metrics, capacity=2)
        assert [count_points(b) for b in batches] == [2, 2, 2, 1]
        _check_invariants(metrics, batches, capacity=2)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            chunk_metrics({}, capacity=0)

    def test_input_is_not_mutated(self):
        metrics = _metric_sizes(2999, 5)
        snapshot = {mid: list(points) for mid, points in metrics.items()}
        chunk_metrics(metrics)
        assert metrics == snapshot

    def test_random_sizes_keep_invariants(self):
        rng = random.Random(1234)
        for _ in range(20):
            sizes = [rng.randint(0, 4000) for _ in range(rng.randint(1, 8))]
            metrics = _metric_sizes(*sizes)
            _check_invariants(metrics, chunk_metrics(metrics))
