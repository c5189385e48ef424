"""UTC helpers for exchange timestamps.

Exchange candles are keyed by epoch milliseconds. All conversions here are
UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime


def ms_to_datetime(ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(ms / 1000, tz=UTC)


def format_ms(ms: int) -> str:
    """Format epoch milliseconds as ISO 8601 with a Z suffix.

    Output format: YYYY-MM-DDTHH:MM:SSZ (candles never carry sub-second
    precision).
    """
    return ms_to_datetime(ms).strftime("%Y-%m-%dT%H:%M:%SZ")
