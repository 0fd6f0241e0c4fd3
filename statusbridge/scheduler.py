"""
Query-and-push scheduling.

The scheduler runs one priming cycle (with backfill when configured) and then
starts a new, independent cycle every interval. Cycles share no mutable state
apart from the last-report slot, which is replaced whole from the event loop.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Set

from .chunker import chunk_metrics
from .errors import UploadError
from .runner import QueryRunner
from .sources import MetricSink

logger = logging.getLogger("statusbridge.scheduler")


@dataclass
class CycleReport:
    """Summary of one query-and-push cycle."""
    started_at: datetime
    backfill: bool = False
    finished_at: Optional[datetime] = None
    points: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, Dict[str, str]] = field(default_factory=dict)
    batches_total: int = 0
    batches_uploaded: int = 0
    batches_failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "backfill": self.backfill,
            "points": dict(self.points),
            "errors": {k: dict(v) for k, v in self.errors.items()},
            "batches_total": self.batches_total,
            "batches_uploaded": self.batches_uploaded,
            "batches_failed": self.batches_failed,
        }


class Scheduler:
    """Drives QueryRunner -> chunk_metrics -> MetricSink on a fixed interval."""

    def __init__(
        self,
        runner: QueryRunner,
        sink: MetricSink,
        interval: timedelta,
        backfill: Optional[timedelta] = None,
    ):
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")
        self.runner = runner
        self.sink = sink
        self.interval = interval
        self.backfill = backfill
        self.cycles_completed = 0
        self.last_report: Optional[CycleReport] = None
        self._tasks: Set[asyncio.Task] = set()

    def run_cycle(self, backfill: Optional[timedelta] = None) -> CycleReport:
        """One blocking query-and-push cycle; upload failures are scoped to their batch."""
        report = CycleReport(started_at=datetime.now(timezone.utc), backfill=backfill is not None)
        logger.info("Started to query and push metrics")

        run = self.runner.run(backfill=backfill)
        metrics = run.point_set()
        report.points = {mid: len(points) for mid, points in metrics.items()}
        report.errors = {mid: {"kind": err.kind, "detail": err.detail} for mid, err in run.errors().items()}

        for batch in chunk_metrics(metrics):
            if not batch:
                continue
            report.batches_total += 1
            try:
                self.sink.upload(batch)
                report.batches_uploaded += 1
            except UploadError as e:
                report.batches_failed += 1
                logger.error(f"upload failed for metrics {', '.join(batch)}: {e}")

        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Finished querying and pushing metrics: {len(metrics)} ok, {len(report.errors)} failed, "
            f"{report.batches_uploaded}/{report.batches_total} batches uploaded"
        )
        return report

    async def run_cycle_async(self, backfill: Optional[timedelta] = None) -> Optional[CycleReport]:
        """Run a cycle in the default executor and record its report."""
        loop = asyncio.get_running_loop()
        try:
            report = await loop.run_in_executor(None, functools.partial(self.run_cycle, backfill))
        except Exception as e:
            logger.exception(f"cycle failed: {e}")
            return None

        self.record_report(report)
        return report

    def record_report(self, report: CycleReport) -> None:
        """Count a finished cycle; a late finisher never replaces a newer cycle's report."""
        self.cycles_completed += 1
        if self.last_report is None or report.started_at >= self.last_report.started_at:
            self.last_report = report

    def _spawn_cycle(self) -> asyncio.Task:
        task = asyncio.create_task(self.run_cycle_async())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run(self, once: bool = False, max_ticks: Optional[int] = None) -> None:
        """
        Priming cycle, then one new cycle per interval until cancelled.

        Args:
            once: stop after the priming cycle
            max_ticks: stop after this many steady ticks (None = forever)
        """
        await self.run_cycle_async(self.backfill)
        if once:
            return

        loop = asyncio.get_running_loop()
        period = self.interval.total_seconds()
        first_tick = loop.time() + period
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            # tick n fires at first_tick + n * period regardless of cycle duration
            await asyncio.sleep(max(0.0, first_tick + ticks * period - loop.time()))
            self._spawn_cycle()
            ticks += 1

        if self._tasks:
            await asyncio.gather(*self._tasks)
