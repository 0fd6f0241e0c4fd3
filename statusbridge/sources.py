"""
Collaborator interfaces consumed by the query-and-push pipeline.

TimeSeriesSource answers instant and range queries; MetricSink accepts one
batch per call. Both are constructed once at process start and passed in.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Tuple

from .points import MetricPointSet

RESULT_VECTOR = "vector"
RESULT_MATRIX = "matrix"


@dataclass
class Series:
    """One time series: its labels and (timestamp seconds, value) samples in time order."""
    labels: Dict[str, str] = field(default_factory=dict)
    samples: List[Tuple[float, float]] = field(default_factory=list)


@dataclass
class QueryResult:
    result_type: str
    series: List[Series] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class TimeSeriesSource(ABC):
    """Query capability of a metrics backend."""

    @abstractmethod
    def query(self, expression: str, at: datetime) -> QueryResult:
        """
        Evaluate expression at a single instant.

        Raises:
            QueryError: backend unreachable or returned an error
        """

    @abstractmethod
    def query_range(self, expression: str, start: datetime, end: datetime, step: timedelta) -> QueryResult:
        """
        Evaluate expression over [start, end] at a fixed step.

        Raises:
            QueryError: backend unreachable or returned an error
        """


class MetricSink(ABC):
    """Batched upload capability of the status page."""

    @abstractmethod
    def upload(self, batch: MetricPointSet) -> None:
        """
        Upload one self-contained batch.

        Raises:
            UploadError: the sink rejected the batch or was unreachable
        """
