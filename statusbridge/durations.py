"""Prometheus-style duration strings: 30s, 5d, 1h30m, 500ms."""

import re
from datetime import timedelta

from .errors import ConfigError

# Units in the order they must appear
UNIT_MILLISECONDS = {
    "y": 365 * 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "h": 60 * 60 * 1000,
    "m": 60 * 1000,
    "s": 1000,
    "ms": 1,
}

_DURATION_RE = re.compile(
    r"^(?:(\d+)y)?(?:(\d+)w)?(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?(?:(\d+)ms)?$"
)


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string into a timedelta.

    Raises:
        ConfigError: the string is empty or not a valid duration
    """
    text = (text or "").strip()
    if text == "0":
        return timedelta(0)

    match = _DURATION_RE.match(text)
    if not text or not match or not any(match.groups()):
        raise ConfigError(f"Incorrect duration format: {text!r}")

    total_ms = 0
    for amount, unit in zip(match.groups(), UNIT_MILLISECONDS):
        if amount is not None:
            total_ms += int(amount) * UNIT_MILLISECONDS[unit]
    return timedelta(milliseconds=total_ms)


def format_duration(value: timedelta) -> str:
    """Inverse of parse_duration, using the largest units first."""
    total_ms = int(value / timedelta(milliseconds=1))
    if total_ms == 0:
        return "0s"

    parts = []
    for unit, size in UNIT_MILLISECONDS.items():
        amount, total_ms = divmod(total_ms, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return "".join(parts)
