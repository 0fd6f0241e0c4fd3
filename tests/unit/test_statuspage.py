"""Unit tests for the Statuspage sink and payload encoding"""
import io
import json
import logging
import threading
import urllib.error
from http.client import IncompleteRead
from unittest.mock import MagicMock, patch

import pytest

from statusbridge.errors import UploadError
from statusbridge.points import MetricPoint
from statusbridge.statuspage import LoggingSink, StatuspageSink, encode_payload

BATCH = {
    "xk9q2v7c8b1m": [MetricPoint(1709294400, "0.998700"), MetricPoint(1709294430, "1.000000")],
    "p3n8d5f2h6tz": [MetricPoint(1709294400, "-12.5")],
}


class TestEncodePayload:

    def test_structure(self):
        payload = json.loads(encode_payload(BATCH))
        assert set(payload) == {"data"}
        assert payload["data"]["xk9q2v7c8b1m"][1] == {"timestamp": 1709294430, "value": 1.0}
        assert payload["data"]["p3n8d5f2h6tz"] == [{"timestamp": 1709294400, "value": -12.5}]

    def test_values_are_bare_numbers_with_rounded_text(self):
        body = encode_payload(BATCH).decode()
        assert '"value": 0.998700' in body
        assert '"value": "0.998700"' not in body

    def test_metric_ids_are_escaped(self):
        payload = json.loads(encode_payload({'we"ird': [MetricPoint(1, "2")]}))
        assert payload["data"]['we"ird'] == [{"timestamp": 1, "value": 2}]

    def test_empty_batch(self):
        assert json.loads(encode_payload({})) == {"data": {}}


class TestStatuspageSink:

    @patch("statusbridge.http_client.urlopen")
    def test_upload_request(self, mock_urlopen):
        mock_response = MagicMock()
        mock_response.read.return_value = b"{}"
        mock_response.__enter__.return_value = mock_response
        mock_urlopen.return_value = mock_response

        StatuspageSink(api_key="secret", page_id="page123").upload(BATCH)

        mock_urlopen.assert_called_once()
        request = mock_urlopen.call_args[0][0]
        assert request.full_url == "https://api.statuspage.io/v1/pages/page123/metrics/data"
        assert request.get_method() == "POST"
        assert request.get_header("Authorization") == "OAuth secret"
        assert request.get_header("Content-type") == "application/json"
        assert json.loads(request.data)["data"]["p3n8d5f2h6tz"][0]["value"] == -12.5

    @patch("statusbridge.http_client.urlopen")
    def test_http_error_includes_body(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.HTTPError(
            "https://api.statuspage.io/v1/pages/page123/metrics/data", 420, "Enhance Your Calm", {},
            io.BytesIO(b'{"error": "rate limited"}'),
        )

        with pytest.raises(UploadError) as exc:
            StatuspageSink(api_key="secret", page_id="page123").upload(BATCH)
        assert str(exc.value) == 'HTTP status 420, API error: {"error": "rate limited"}'
        assert exc.value.status == 420

    @patch("statusbridge.http_client.urlopen")
    def test_http_error_unreadable_body(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.HTTPError(
            "https://api.statuspage.io/v1/pages/page123/metrics/data", 500, "Server Error", {}, None,
        )

        with pytest.raises(UploadError, match="HTTP status 500, Empty API response"):
            StatuspageSink(api_key="secret", page_id="page123").upload(BATCH)

    @patch("statusbridge.http_client.urlopen")
    def test_connection_error(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError("Name or service not known")

        with pytest.raises(UploadError, match="Couldn't reach Statuspage"):
            StatuspageSink(api_key="secret", page_id="page123").upload(BATCH)


    @patch("statusbridge.http_client.urlopen")
    def test_incomplete_response_is_upload_error(self, mock_urlopen):
        mock_response = MagicMock()
        mock_response.read.side_effect = IncompleteRead(b"{", 10)
        mock_response.__enter__.return_value = mock_response
        mock_urlopen.return_value = mock_response

        with pytest.raises(UploadError, match="Invalid response from Statuspage"):
            StatuspageSink(api_key="secret", page_id="page123").upload(BATCH)

def test_logging_sink(caplog):
    sink = LoggingSink()
    with caplog.at_level(logging.INFO, logger="statusbridge.statuspage"):
        sink.upload(BATCH)
    assert sink.uploaded == 1
    assert "would push 3 points" in caplog.text


def test_logging_sink_counts_concurrent_uploads():
    sink = LoggingSink()
    threads = [threading.Thread(target=lambda: [sink.upload(BATCH) for _ in range(50)]) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sink.uploaded == 400
