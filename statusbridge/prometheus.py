"""Prometheus HTTP API implementation of TimeSeriesSource."""

import json
import logging
from datetime import datetime, timedelta
from http.client import HTTPException
from typing import Any, Dict, List
from urllib.error import HTTPError

from .errors import QueryError
from .http_client import JsonHttpClient, read_error_body
from .sources import RESULT_MATRIX, RESULT_VECTOR, QueryResult, Series, TimeSeriesSource

logger = logging.getLogger("statusbridge.prometheus")


def _unix(value: datetime) -> str:
    return f"{value.timestamp():.3f}"


def _sample(pair: List[Any]) -> tuple:
    # Prometheus encodes sample values as strings ("1.5", "NaN", "+Inf")
    return float(pair[0]), float(pair[1])


def parse_response(payload: Any) -> QueryResult:
    """
    Convert a Prometheus API envelope into a QueryResult.

    Raises:
        QueryError: the envelope reports an error or is malformed
    """
    if not isinstance(payload, dict):
        raise QueryError(f"Malformed Prometheus response: expected an object, got {type(payload).__name__}")

    warnings = [str(w) for w in payload.get("warnings") or []]

    if payload.get("status") != "success":
        error_type = payload.get("errorType", "unknown")
        message = payload.get("error", "no error message")
        raise QueryError(f"Couldn't query Prometheus: {error_type}: {message}", warnings)

    data = payload.get("data", {})
    if not isinstance(data, dict):
        raise QueryError(f"Malformed Prometheus response: data is {type(data).__name__}", warnings)
    result_type = data.get("resultType", "")
    result = data.get("result")

    if result_type in (RESULT_VECTOR, RESULT_MATRIX) and not (
        isinstance(result, list) and all(isinstance(item, dict) for item in result)
    ):
        raise QueryError(f"Malformed Prometheus response: {result_type} result must be a list of objects", warnings)

    try:
        if result_type == RESULT_VECTOR:
            series = [Series(labels=item.get("metric", {}), samples=[_sample(item["value"])]) for item in result]
        elif result_type == RESULT_MATRIX:
            series = [
                Series(labels=item.get("metric", {}), samples=[_sample(v) for v in item["values"]])
                for item in result
            ]
        else:
            # scalar / string results carry no series
            series = []
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        raise QueryError(f"Malformed Prometheus response: {e}", warnings) from e

    return QueryResult(result_type=result_type, series=series, warnings=warnings)


class PrometheusSource(TimeSeriesSource):
    """Queries a Prometheus server through /api/v1/query and /api/v1/query_range."""

    def __init__(self, url: str, timeout: float = 30):
        self.url = url
        self.http = JsonHttpClient(url, timeout=timeout)

    def _get(self, endpoint: str, params: Dict[str, str]) -> QueryResult:
        try:
            payload = self.http.get_json(endpoint, params)
        except HTTPError as e:
            # Prometheus returns its error envelope with 4xx/5xx codes
            body = read_error_body(e)
            try:
                payload = json.loads(body) if body else None
            except ValueError:
                payload = None
            if not isinstance(payload, dict):
                raise QueryError(f"Couldn't query Prometheus: HTTP {e.code}: {body or e.reason}") from e
        except (OSError, HTTPException) as e:
            raise QueryError(f"Couldn't query Prometheus: {e}") from e
        except ValueError as e:
            raise QueryError(f"Couldn't query Prometheus: invalid JSON response: {e}") from e

        return parse_response(payload)

    def query(self, expression: str, at: datetime) -> QueryResult:
        logger.debug(f"instant query at {at.isoformat()}: {expression}")
        return self._get("/api/v1/query", {"query": expression, "time": _unix(at)})

    def query_range(self, expression: str, start: datetime, end: datetime, step: timedelta) -> QueryResult:
        logger.debug(f"range query {start.isoformat()} .. {end.isoformat()} step {step}: {expression}")
        params = {
            "query": expression,
            "start": _unix(start),
            "end": _unix(end),
            "step": f"{step.total_seconds():g}",
        }
        return self._get("/api/v1/query_range", params)
