"""
statusbridge error taxonomy.

QueryError, InvalidValue and UploadError are scoped to one metric, one sample
or one batch and never stop the process. ConfigError is fatal at startup.
"""

from typing import List, Optional


class StatusBridgeError(Exception):
    """Base class for all statusbridge errors."""


class ConfigError(StatusBridgeError):
    """Malformed or unreadable configuration."""


class QueryError(StatusBridgeError):
    """A query failed: source unreachable, bad result type or cardinality."""

    kind = "query"

    def __init__(self, message: str, warnings: Optional[List[str]] = None):
        super().__init__(message)
        self.warnings = list(warnings or [])


class UnexpectedCardinality(QueryError):
    """The query did not return exactly one series (or one sample)."""

    kind = "cardinality"

    def __init__(self, count: int, what: str = "time series", warnings: Optional[List[str]] = None):
        super().__init__(f"Expected single {what}, got {count}", warnings)
        self.count = count


class InvalidValue(StatusBridgeError):
    """A sample value is NaN or infinite."""

    kind = "invalid_value"

    def __init__(self, value: float, warnings: Optional[List[str]] = None):
        super().__init__(f"Invalid metric value {value}")
        self.value = value
        self.warnings = list(warnings or [])


class UploadError(StatusBridgeError):
    """The sink rejected a batch or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body
