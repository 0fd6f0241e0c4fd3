"""statusbridge - republishes Prometheus query results as Statuspage system metrics"""

from .chunker import MAX_POINTS_PER_BATCH, chunk_metrics
from .errors import (
    ConfigError,
    InvalidValue,
    QueryError,
    StatusBridgeError,
    UnexpectedCardinality,
    UploadError,
)
from .fetcher import RangeFetcher
from .points import MetricPoint, MetricPointSet, format_value, validate_sample
from .runner import MetricErr, MetricOk, QueryRunner, RunResult
from .scheduler import CycleReport, Scheduler
from .sources import MetricSink, QueryResult, Series, TimeSeriesSource

__version__ = "0.1.0"

__all__ = [
    # Points
    'MetricPoint',
    'MetricPointSet',
    'format_value',
    'validate_sample',

    # Errors
    'StatusBridgeError',
    'ConfigError',
    'QueryError',
    'UnexpectedCardinality',
    'InvalidValue',
    'UploadError',

    # Collaborator interfaces
    'TimeSeriesSource',
    'MetricSink',
    'QueryResult',
    'Series',

    # Pipeline
    'RangeFetcher',
    'QueryRunner',
    'RunResult',
    'MetricOk',
    'MetricErr',
    'chunk_metrics',
    'MAX_POINTS_PER_BATCH',
    'Scheduler',
    'CycleReport',
]
