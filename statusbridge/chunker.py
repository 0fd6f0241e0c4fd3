"""Packs a metric point set into upload batches under the per-request point limit."""

from typing import List

from .points import MetricPointSet

MAX_POINTS_PER_BATCH = 3000


def chunk_metrics(metrics: MetricPointSet, capacity: int = MAX_POINTS_PER_BATCH) -> List[MetricPointSet]:
    """
    Split metrics into batches of at most `capacity` points.

    Metrics are placed in iteration order; a metric is split across
    consecutive batches only when the batch under construction fills up.
    Points keep their order. An empty input yields one empty batch.
    """
    if capacity <= 0:
        raise ValueError(f"batch capacity must be positive, got {capacity}")

    batches: List[MetricPointSet] = []
    batch: MetricPointSet = {}
    remaining = capacity

    for metric_id, points in metrics.items():
        start = 0
        while start < len(points):
            end = min(start + remaining, len(points))
            batch.setdefault(metric_id, []).extend(points[start:end])
            remaining -= end - start
            if remaining == 0:
                batches.append(batch)
                batch = {}
                remaining = capacity
            start = end

    # An empty input still produces one (empty) batch
    if batch or not batches:
        batches.append(batch)
    return batches
