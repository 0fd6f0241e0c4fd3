"""Statuspage metrics data API implementation of MetricSink."""

import json
import logging
import threading
from http.client import HTTPException
from urllib.error import HTTPError

from .errors import UploadError
from .http_client import JsonHttpClient, read_error_body
from .points import MetricPointSet, count_points
from .sources import MetricSink

logger = logging.getLogger("statusbridge.statuspage")

STATUSPAGE_API_BASE = "https://api.statuspage.io/v1"


def encode_payload(batch: MetricPointSet) -> bytes:
    """
    Encode a batch as {"data": {metric_id: [{"timestamp": .., "value": ..}]}}.

    Values are emitted as bare JSON numbers using their fixed-point text, so
    the rounding chosen upstream reaches the API unchanged.
    """
    metrics = []
    for metric_id, points in batch.items():
        encoded_points = ", ".join(
            f'{{"timestamp": {int(p.timestamp)}, "value": {p.value}}}' for p in points
        )
        metrics.append(f"{json.dumps(metric_id)}: [{encoded_points}]")
    return f'{{"data": {{{", ".join(metrics)}}}}}'.encode("utf-8")


class StatuspageSink(MetricSink):
    """Pushes metric points to POST /pages/{page_id}/metrics/data."""

    def __init__(self, api_key: str, page_id: str, timeout: float = 30, api_base: str = STATUSPAGE_API_BASE):
        self.page_id = page_id
        self.http = JsonHttpClient(
            api_base,
            timeout=timeout,
            headers={"Authorization": f"OAuth {api_key}"},
        )

    def upload(self, batch: MetricPointSet) -> None:
        body = encode_payload(batch)
        logger.debug("Metrics payload pushing to Statuspage: %s", body.decode("utf-8"))
        logger.info("Pushing metrics: %s", ", ".join(batch))

        try:
            self.http.post_json(f"/pages/{self.page_id}/metrics/data", body)
        except HTTPError as e:
            text = read_error_body(e)
            if not text:
                raise UploadError(f"HTTP status {e.code}, Empty API response", status=e.code) from e
            raise UploadError(f"HTTP status {e.code}, API error: {text}", status=e.code, body=text) from e
        except OSError as e:
            raise UploadError(f"Couldn't reach Statuspage: {e}") from e
        except (HTTPException, UnicodeDecodeError) as e:
            raise UploadError(f"Invalid response from Statuspage: {e!r}") from e


class LoggingSink(MetricSink):
    """Dry-run sink: logs what would have been uploaded."""

    def __init__(self):
        self.uploaded = 0
        self._lock = threading.Lock()

    def upload(self, batch: MetricPointSet) -> None:
        # overlapping cycles call this from executor threads
        with self._lock:
            self.uploaded += 1
        logger.info(f"dry run: would push {count_points(batch)} points for {', '.join(batch)}")
        logger.debug("dry run payload: %s", encode_payload(batch).decode("utf-8"))
