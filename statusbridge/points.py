"""Metric points and the single-sample validation/rounding policy."""

import math
from dataclasses import dataclass
from typing import Dict, List

from .errors import InvalidValue


@dataclass(frozen=True)
class MetricPoint:
    """Single point as accepted by the status page: whole seconds and fixed-point text."""
    timestamp: int
    value: str

    def to_dict(self) -> Dict[str, object]:
        return {"timestamp": self.timestamp, "value": self.value}


# metric id -> ordered points
MetricPointSet = Dict[str, List[MetricPoint]]


def format_value(value: float, decimal: int) -> str:
    """
    Format value with exactly `decimal` fractional digits.

    Raises:
        InvalidValue: value is NaN or infinite
        ValueError: decimal is negative
    """
    if decimal < 0:
        raise ValueError(f"rounding precision must be non-negative, got {decimal}")
    if math.isnan(value) or math.isinf(value):
        raise InvalidValue(value)
    return f"{value:.{decimal}f}"


def validate_sample(timestamp: float, value: float, decimal: int) -> MetricPoint:
    """Turn a raw (timestamp seconds, value) sample into a MetricPoint."""
    return MetricPoint(timestamp=math.floor(timestamp), value=format_value(value, decimal))


def count_points(metrics: MetricPointSet) -> int:
    return sum(len(points) for points in metrics.values())
