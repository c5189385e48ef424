"""Stateful trend indicators: trailing-stop bands, cloud, stop-and-reverse.

These cannot be written as a single window formula. Each consumes the full
high/low/close columns of one series and returns points aligned to a suffix
of the input:

- trailing_stop_bands: SuperTrend-style ATR bands, warmup = atr_period
- cloud: Ichimoku-style multi-horizon midpoints, warmup = longest horizon
- stop_and_reverse: Parabolic-SAR-style fold over TrendState, warmup = 1

All three are deterministic and hold no state between calls.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from bitsentinel.engine.errors import (
    InsufficientDataError,
    InvalidParameterError,
    MisalignedInputError,
)
from bitsentinel.engine.library import IndicatorLibrary, NumpyIndicatorLibrary
from bitsentinel.engine.types import (
    CloudPoint,
    Direction,
    Signal,
    StopAndReversePoint,
    TrailingStopPoint,
    TrendState,
)

Values = Sequence[float]

_default_library = NumpyIndicatorLibrary()


def _check_aligned(name: str, high: Values, low: Values, close: Values) -> int:
    lengths = {"high": len(high), "low": len(low), "close": len(close)}
    if len(set(lengths.values())) > 1:
        raise MisalignedInputError(name, lengths)
    return lengths["close"]


# --- (a) Volatility trailing-stop bands ---


def trailing_stop_bands(
    high: Values,
    low: Values,
    close: Values,
    atr_period: int = 10,
    multiplier: float = 3.0,
    library: IndicatorLibrary | None = None,
) -> list[TrailingStopPoint]:
    """ATR bands around the candle midpoint, one point per index >= atr_period.

    upper/lower = (high + low) / 2 -/+ multiplier * ATR. The trend is
    bullish while close stays above the lower band. The upper band never
    flips the trend and bands are not locked to previous values.
    """
    if multiplier < 0:
        raise InvalidParameterError(
            f"trailing_stop: multiplier must be >= 0, got {multiplier}"
        )
    n = _check_aligned("trailing_stop", high, low, close)
    lib = library or _default_library
    try:
        # ATR[j] belongs to candle j + atr_period
        atr = lib.atr(high, low, close, atr_period)
    except InsufficientDataError as e:
        raise InsufficientDataError("trailing_stop", e.required, e.available) from e

    points: list[TrailingStopPoint] = []
    for i in range(atr_period, n):
        mid = (high[i] + low[i]) / 2
        offset = multiplier * atr[i - atr_period]
        lower = mid - offset
        points.append(
            TrailingStopPoint(
                upper_band=mid + offset,
                lower_band=lower,
                trend=Signal.BULLISH if close[i] > lower else Signal.BEARISH,
            )
        )
    return points


# --- (b) Multi-horizon cloud ---


def _window_midpoints(high: np.ndarray, low: np.ndarray, period: int) -> np.ndarray:
    """Midpoint of [i - period, i) for every i in period..n.

    Element j covers the window ending just before index j + period, so the
    value for index i is at j = i - period.
    """
    highest = sliding_window_view(high, period).max(axis=1)
    lowest = sliding_window_view(low, period).min(axis=1)
    return (highest + lowest) / 2.0


def cloud(
    high: Values,
    low: Values,
    close: Values,
    conversion_period: int = 9,
    base_period: int = 26,
    span_b_period: int = 52,
) -> list[CloudPoint]:
    """Ichimoku-style lines for every index i >= max(periods).

    Each line is the midpoint of the highest high and lowest low over the
    look-back window [i - period, i), which excludes candle i itself. The
    signal is bullish only when close[i] is above both leading spans.
    """
    periods = (conversion_period, base_period, span_b_period)
    if min(periods) < 1:
        raise InvalidParameterError(f"cloud: periods must be >= 1, got {periods}")
    n = _check_aligned("cloud", high, low, close)
    start = max(periods)
    if n <= start:
        raise InsufficientDataError("cloud", start + 1, n)

    h = np.asarray(high, dtype=float)
    lo = np.asarray(low, dtype=float)
    conversion = _window_midpoints(h, lo, conversion_period)
    base = _window_midpoints(h, lo, base_period)
    span_b = _window_midpoints(h, lo, span_b_period)

    points: list[CloudPoint] = []
    for i in range(start, n):
        conv = float(conversion[i - conversion_period])
        base_line = float(base[i - base_period])
        span_a = (conv + base_line) / 2
        span_b_line = float(span_b[i - span_b_period])
        bullish = close[i] > span_a and close[i] > span_b_line
        points.append(
            CloudPoint(
                conversion=conv,
                base=base_line,
                leading_span_a=span_a,
                leading_span_b=span_b_line,
                signal=Signal.BULLISH if bullish else Signal.BEARISH,
            )
        )
    return points


# --- (c) Adaptive stop-and-reverse ---


def initial_state(high0: float, low0: float, step: float) -> TrendState:
    """State before index 1: rising, stop at the first low."""
    return TrendState(
        direction=Direction.RISING,
        acceleration_factor=step,
        extreme_point=high0,
        current_stop=low0,
    )


def advance(
    state: TrendState,
    high: float,
    low: float,
    close: float,
    step: float,
    max_step: float,
) -> TrendState:
    """Transition function for one candle.

    The stop moves toward the extreme point by the acceleration factor.
    A close through the stop reverses direction: the stop jumps to the old
    extreme point, the extreme point restarts at this candle and the factor
    resets to ``step``. Otherwise a new extreme raises the factor by
    ``step``, capped at ``max_step``. No clamping against prior candles.
    """
    af = state.acceleration_factor
    ep = state.extreme_point

    if state.direction is Direction.RISING:
        stop = state.current_stop + af * (ep - state.current_stop)
        if close < stop:
            return TrendState(Direction.FALLING, step, low, ep)
        if high > ep:
            return TrendState(Direction.RISING, min(af + step, max_step), high, stop)
        return TrendState(Direction.RISING, af, ep, stop)

    stop = state.current_stop - af * (state.current_stop - ep)
    if close > stop:
        return TrendState(Direction.RISING, step, high, ep)
    if low < ep:
        return TrendState(Direction.FALLING, min(af + step, max_step), low, stop)
    return TrendState(Direction.FALLING, af, ep, stop)


def stop_and_reverse_states(
    high: Values,
    low: Values,
    close: Values,
    step: float = 0.02,
    max_step: float = 0.2,
) -> list[TrendState]:
    """Fold advance() over indices 1..n-1, returning the state after each."""
    if not 0 < step <= max_step:
        raise InvalidParameterError(
            f"stop_and_reverse: need 0 < step <= max_step, got step={step} "
            f"max_step={max_step}"
        )
    n = _check_aligned("stop_and_reverse", high, low, close)
    if n < 2:
        raise InsufficientDataError("stop_and_reverse", 2, n)

    state = initial_state(high[0], low[0], step)
    states: list[TrendState] = []
    for i in range(1, n):
        state = advance(state, high[i], low[i], close[i], step, max_step)
        states.append(state)
    return states


def stop_and_reverse(
    high: Values,
    low: Values,
    close: Values,
    step: float = 0.02,
    max_step: float = 0.2,
) -> list[StopAndReversePoint]:
    """Parabolic-SAR-style stop value and direction for indices 1..n-1."""
    return [
        StopAndReversePoint(value=s.current_stop, trend=s.direction)
        for s in stop_and_reverse_states(high, low, close, step, max_step)
    ]
