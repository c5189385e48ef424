"""Indicator output types.

Frozen dataclasses: every point is a value object, recomputed from
scratch on each run. Enums subclass str so points serialise directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Signal(str, Enum):
    """Trend verdict attached to trailing-stop and cloud points."""

    BULLISH = "bullish"
    BEARISH = "bearish"


class Direction(str, Enum):
    """Side of the market the stop-and-reverse scan is tracking."""

    RISING = "rising"
    FALLING = "falling"


# --- Standard library points ---


@dataclass(frozen=True)
class MACDPoint:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class StochasticPoint:
    k: float
    d: float


@dataclass(frozen=True)
class BollingerPoint:
    """Bands plus %B (position of close within the bands, 0..1 inside)."""

    middle: float
    upper: float
    lower: float
    pb: float


@dataclass(frozen=True)
class ADXPoint:
    adx: float
    plus_di: float
    minus_di: float


# --- Trend engine points ---


@dataclass(frozen=True)
class TrailingStopPoint:
    upper_band: float
    lower_band: float
    trend: Signal


@dataclass(frozen=True)
class CloudPoint:
    conversion: float
    base: float
    leading_span_a: float
    leading_span_b: float
    signal: Signal


@dataclass(frozen=True)
class StopAndReversePoint:
    value: float
    trend: Direction


@dataclass(frozen=True)
class TrendState:
    """Accumulator threaded through the stop-and-reverse scan.

    Only meaningful inside the scan that produced it.
    """

    direction: Direction
    acceleration_factor: float
    extreme_point: float
    current_stop: float
