"""
Windowed range queries for historical backfill.

A backfill interval is split into windows of at most WINDOW_SIZE. Each window
is one range query; consecutive windows are separated by one millisecond so
the boundary sample is not fetched twice.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from .errors import InvalidValue, QueryError, UnexpectedCardinality
from .points import MetricPoint, validate_sample
from .sources import RESULT_MATRIX, TimeSeriesSource

logger = logging.getLogger("statusbridge.fetcher")

WINDOW_SIZE = timedelta(hours=24)
WINDOW_GAP = timedelta(milliseconds=1)


def iter_windows(start: datetime, end: datetime, size: timedelta = WINDOW_SIZE):
    """Yield (window_start, window_end) pairs covering [start, end] in order."""
    while start < end:
        window_end = min(start + size, end)
        yield start, window_end
        start = window_end + WINDOW_GAP


class RangeFetcher:
    """Fetches all valid points for a query over a backfill duration."""

    def __init__(self, source: TimeSeriesSource, step: timedelta, decimal: int, window_size: timedelta = WINDOW_SIZE):
        self.source = source
        self.step = step
        self.decimal = decimal
        self.window_size = window_size

    def fetch(
        self,
        query: str,
        backfill: timedelta,
        now: Optional[datetime] = None,
        metric_id: str = "",
    ) -> Tuple[List[MetricPoint], List[str]]:
        """
        Query [now - backfill, now] window by window.

        Returns:
            (points in chronological order, warnings from every window)

        Raises:
            QueryError: a window failed or did not return exactly one series;
                its `warnings` holds everything collected up to the failure
        """
        now = now or datetime.now(timezone.utc)
        points: List[MetricPoint] = []
        warnings: List[str] = []

        for start, end in iter_windows(now - backfill, now, self.window_size):
            logger.info(
                f"[{metric_id}] querying metrics from {start.isoformat()} to {end.isoformat()} with step {self.step}"
            )
            try:
                result = self.source.query_range(query, start, end, self.step)
            except QueryError as e:
                warnings.extend(e.warnings)
                raise QueryError(str(e), warnings) from e
            warnings.extend(result.warnings)

            if result.result_type != RESULT_MATRIX:
                raise QueryError(f"Expected result type {RESULT_MATRIX}, got {result.result_type}", warnings)
            if len(result.series) != 1:
                raise UnexpectedCardinality(len(result.series), warnings=warnings)

            samples = result.series[0].samples
            logger.info(f"[{metric_id}] got {len(samples)} samples")
            logger.debug(f"[{metric_id}] query result: {samples}")

            for timestamp, value in samples:
                try:
                    points.append(validate_sample(timestamp, value, self.decimal))
                except InvalidValue as e:
                    logger.warning(f"[{metric_id}] dropping sample at {timestamp}: {e}")

        return points, warnings
