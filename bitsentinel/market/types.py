"""Market data domain types.

Frozen dataclasses throughout: a CandleSeries is built once per fetch and
never mutated afterwards. Prices and volumes are floats (the indicator
engine is numeric, not monetary).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import overload


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar keyed by its open time in epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def is_well_formed(self) -> bool:
        """True if low <= min(open, close) <= max(open, close) <= high
        and volume is non-negative."""
        return (
            self.low <= min(self.open, self.close)
            and max(self.open, self.close) <= self.high
            and self.volume >= 0
        )


@dataclass(frozen=True)
class OHLCVColumns:
    """Column view of a series: equal-length tuples, index-aligned."""

    timestamps: tuple[int, ...]
    open: tuple[float, ...]
    high: tuple[float, ...]
    low: tuple[float, ...]
    close: tuple[float, ...]
    volume: tuple[float, ...]

    def __len__(self) -> int:
        return len(self.close)


@dataclass(frozen=True)
class CandleSeries:
    """Ordered candles for one symbol and interval.

    Construct via from_candles() to get ascending timestamp order.
    Duplicate timestamps are kept as delivered.
    """

    symbol: str
    interval: str
    candles: tuple[Candle, ...] = ()

    @classmethod
    def from_candles(
        cls,
        symbol: str,
        interval: str,
        candles: Iterable[Candle],
    ) -> CandleSeries:
        """Build a series sorted ascending by timestamp (stable sort)."""
        ordered = sorted(candles, key=lambda c: c.timestamp)
        return cls(symbol=symbol, interval=interval, candles=tuple(ordered))

    def __len__(self) -> int:
        return len(self.candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self.candles)

    @overload
    def __getitem__(self, index: int) -> Candle: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Candle, ...]: ...

    def __getitem__(self, index: int | slice) -> Candle | tuple[Candle, ...]:
        return self.candles[index]

    @property
    def first_timestamp(self) -> int | None:
        return self.candles[0].timestamp if self.candles else None

    @property
    def last_timestamp(self) -> int | None:
        return self.candles[-1].timestamp if self.candles else None

    def columns(self) -> OHLCVColumns:
        """Extract the five aligned OHLCV columns plus timestamps."""
        return OHLCVColumns(
            timestamps=tuple(c.timestamp for c in self.candles),
            open=tuple(c.open for c in self.candles),
            high=tuple(c.high for c in self.candles),
            low=tuple(c.low for c in self.candles),
            close=tuple(c.close for c in self.candles),
            volume=tuple(c.volume for c in self.candles),
        )
