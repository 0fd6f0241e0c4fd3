"""
Per-metric query execution.

Every configured metric is queried independently and produces a tagged
result: MetricOk with its points or MetricErr with the failure kind. One bad
query never prevents the others from being evaluated.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Union

from .errors import InvalidValue, QueryError, UnexpectedCardinality
from .fetcher import RangeFetcher
from .points import MetricPoint, MetricPointSet, validate_sample
from .sources import RESULT_VECTOR, TimeSeriesSource

logger = logging.getLogger("statusbridge.runner")


@dataclass(frozen=True)
class MetricOk:
    points: List[MetricPoint]
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MetricErr:
    kind: str
    detail: str
    warnings: List[str] = field(default_factory=list)


MetricResult = Union[MetricOk, MetricErr]


@dataclass
class RunResult:
    """Outcome of one query pass, keyed by metric id in configuration order."""
    results: Dict[str, MetricResult] = field(default_factory=dict)

    def point_set(self) -> MetricPointSet:
        """Successful metrics only; failed metrics are absent, not empty."""
        return {mid: r.points for mid, r in self.results.items() if isinstance(r, MetricOk)}

    def errors(self) -> Dict[str, MetricErr]:
        return {mid: r for mid, r in self.results.items() if isinstance(r, MetricErr)}


class QueryRunner:
    """Runs every configured query in instant or backfill mode."""

    def __init__(self, source: TimeSeriesSource, queries: Mapping[str, str], step: timedelta, decimal: int = 6):
        self.source = source
        self.queries = dict(queries)
        self.decimal = decimal
        self.fetcher = RangeFetcher(source, step=step, decimal=decimal)

    def query_instant(self, query: str, now: datetime, metric_id: str = "") -> MetricOk:
        """
        Evaluate query at `now`; the result must be exactly one series with one sample.

        Raises:
            QueryError: transport failure, wrong result type or cardinality
            InvalidValue: the sample is NaN or infinite
        """
        result = self.source.query(query, now)

        if result.result_type != RESULT_VECTOR:
            raise QueryError(f"Expected result type {RESULT_VECTOR}, got {result.result_type}", result.warnings)
        if len(result.series) != 1:
            raise UnexpectedCardinality(len(result.series), warnings=result.warnings)

        samples = result.series[0].samples
        if len(samples) != 1:
            raise UnexpectedCardinality(len(samples), what="sample", warnings=result.warnings)

        timestamp, value = samples[0]
        logger.info(f"[{metric_id}] query result: {value}")
        try:
            point = validate_sample(timestamp, value, self.decimal)
        except InvalidValue as e:
            raise InvalidValue(e.value, result.warnings) from e
        return MetricOk(points=[point], warnings=result.warnings)

    def run_one(
        self,
        metric_id: str,
        query: str,
        backfill: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> MetricResult:
        """Query one metric, turning any scoped failure into MetricErr."""
        now = now or datetime.now(timezone.utc)
        try:
            if backfill is None:
                outcome = self.query_instant(query, now, metric_id)
            else:
                points, warnings = self.fetcher.fetch(query, backfill, now=now, metric_id=metric_id)
                outcome = MetricOk(points=points, warnings=warnings)
        except (QueryError, InvalidValue) as e:
            outcome = MetricErr(kind=e.kind, detail=str(e), warnings=e.warnings)

        for warning in outcome.warnings:
            logger.warning(f"[{metric_id}] Prometheus query warning: {warning}")
        if isinstance(outcome, MetricErr):
            logger.error(f"[{metric_id}] {outcome.detail}")
        return outcome

    def run(self, backfill: Optional[timedelta] = None, now: Optional[datetime] = None) -> RunResult:
        """Query every configured metric once. All metrics share the same `now`."""
        now = now or datetime.now(timezone.utc)
        run = RunResult()
        for metric_id, query in self.queries.items():
            run.results[metric_id] = self.run_one(metric_id, query, backfill=backfill, now=now)
        return run
