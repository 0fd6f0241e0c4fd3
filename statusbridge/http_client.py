"""
HTTP client utilities for statusbridge.

Thin JSON-over-HTTP helper shared by the Prometheus source and the
Statuspage sink. Every call carries its own timeout.
"""

import json
from http.client import HTTPException
from typing import Any, Dict, Optional
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


def read_error_body(error: HTTPError) -> Optional[str]:
    """Best-effort read of an HTTPError response body; None if it cannot be read."""
    try:
        return error.read().decode("utf-8")
    except (OSError, HTTPException, UnicodeDecodeError, AttributeError):
        return None


class JsonHttpClient:
    """HTTP client for a single JSON API base URL."""

    def __init__(self, base_url: str, timeout: float = 30, headers: Optional[Dict[str, str]] = None):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL of the API (e.g., http://localhost:9090)
            timeout: Request timeout in seconds
            headers: Headers sent with every request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(headers or {})

    def _open(self, req: Request) -> str:
        with urlopen(req, timeout=self.timeout) as resp:
            return resp.read().decode("utf-8")

    def get_json(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Make a GET request and decode the JSON response.

        Raises:
            HTTPError: On HTTP errors
            URLError: On connection errors
            ValueError: On a non-JSON response body
        """
        url = f"{self.base_url}{endpoint}"
        if params:
            url = f"{url}?{urlencode(params)}"
        req = Request(url, headers=self.headers, method="GET")
        raw = self._open(req)
        return json.loads(raw) if raw else {}

    def post_json(self, endpoint: str, body: bytes, headers: Optional[Dict[str, str]] = None) -> str:
        """
        POST an already encoded JSON document.

        Returns:
            Raw response text

        Raises:
            HTTPError: On HTTP errors
            URLError: On connection errors
        """
        url = f"{self.base_url}{endpoint}"
        hdrs = {"Content-Type": "application/json"}
        hdrs.update(self.headers)
        hdrs.update(headers or {})
        req = Request(url, data=body, headers=hdrs, method="POST")
        return self._open(req)
