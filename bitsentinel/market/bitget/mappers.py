"""Bitget wire format to domain type converters.

All string-to-number coercion happens here. Bitget returns candle rows as
arrays of strings: [ts, open, high, low, close, base_volume, quote_volume].
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from bitsentinel.market.errors import MalformedCandleError
from bitsentinel.market.types import Candle

log = structlog.get_logger()

SUCCESS_CODE = "00000"

# Our interval string -> Bitget granularity
_GRANULARITY_MAP: dict[str, str] = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "30m": "30m",
    "1h": "1H",
    "4h": "4H",
    "1d": "1D",
}


def to_granularity(interval: str) -> str:
    """Map an interval such as "1h" to Bitget's granularity ("1H")."""
    granularity = _GRANULARITY_MAP.get(interval.lower())
    if granularity is None:
        msg = (
            f"Unsupported interval: {interval}. "
            f"Available: {', '.join(_GRANULARITY_MAP)}"
        )
        raise ValueError(msg)
    return granularity


def supported_intervals() -> list[str]:
    return list(_GRANULARITY_MAP)


def row_to_candle(row: Sequence[Any]) -> Candle:
    """Convert one provider row to a Candle.

    Accepts strings or numbers. Extra trailing columns (quote volume) are
    ignored.

    Raises:
        MalformedCandleError: If the row is short or not numeric.
    """
    if len(row) < 6:
        raise MalformedCandleError(row, f"expected 6 columns, got {len(row)}")
    try:
        return Candle(
            timestamp=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
        )
    except (TypeError, ValueError) as e:
        raise MalformedCandleError(row, f"non-numeric field: {e}") from e


def rows_to_candles(
    rows: Any,
    *,
    reject_malformed: bool = False,
) -> list[Candle]:
    """Convert a provider payload to candles sorted ascending by timestamp.

    OHLC-ordering violations pass through with a warning unless
    ``reject_malformed`` is set, in which case the first one raises.
    """
    if not isinstance(rows, list):
        return []

    candles = [row_to_candle(row) for row in rows]

    bad = [c for c in candles if not c.is_well_formed()]
    if bad:
        if reject_malformed:
            raise MalformedCandleError(bad[0], "violates low <= open/close <= high")
        log.warning(
            "malformed_candles_passed_through",
            count=len(bad),
            first_timestamp=bad[0].timestamp,
        )

    candles.sort(key=lambda c: c.timestamp)
    return candles
