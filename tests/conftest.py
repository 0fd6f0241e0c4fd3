"""Pytest configuration and shared fixtures"""
from datetime import datetime, timezone

import pytest

from statusbridge.errors import UploadError
from statusbridge.points import MetricPoint
from statusbridge.sources import MetricSink, QueryResult, Series, TimeSeriesSource

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def vector(*values, timestamp=None, warnings=None):
    """Instant query result with one series per value."""
    ts = timestamp if timestamp is not None else NOW.timestamp()
    return QueryResult("vector", [Series({"job": "api"}, [(ts, v)]) for v in values], list(warnings or []))


def matrix(*series_samples, warnings=None):
    """Range query result; each argument is one series' list of (ts, value)."""
    return QueryResult("matrix", [Series({"job": "api"}, list(s)) for s in series_samples], list(warnings or []))


def make_points(count, start=1700000000):
    return [MetricPoint(timestamp=start + i, value=f"{i}.000000") for i in range(count)]


class FakeSource(TimeSeriesSource):
    """In-memory TimeSeriesSource.

    `instant` maps an expression to a QueryResult or an exception to raise.
    `ranged` maps an expression to a callable(start, end, step) returning a
    QueryResult or raising.
    """

    def __init__(self, instant=None, ranged=None):
        self.instant = instant or {}
        self.ranged = ranged or {}
        self.instant_calls = []
        self.range_calls = []

    def query(self, expression, at):
        self.instant_calls.append((expression, at))
        outcome = self.instant[expression]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def query_range(self, expression, start, end, step):
        self.range_calls.append((expression, start, end, step))
        return self.ranged[expression](start, end, step)


class RecordingSink(MetricSink):
    """Records uploaded batches; batches containing a metric in `reject` fail."""

    def __init__(self, reject=()):
        self.reject = set(reject)
        self.batches = []

    def upload(self, batch):
        if self.reject & set(batch):
            raise UploadError("HTTP status 422, API error: rejected", status=422)
        self.batches.append(batch)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def sink():
    return RecordingSink()
