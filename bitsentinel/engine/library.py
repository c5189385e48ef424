"""Standard single-pass indicators over OHLCV columns.

IndicatorLibrary is the seam the aggregator and trend engine call through;
NumpyIndicatorLibrary is the default implementation. Every method returns a
list left-truncated by the indicator's warmup, so element 0 lines up with
input index ``warmup`` and len(output) == len(input) - warmup.

Degenerate divisions (flat ranges, zero volume) resolve to a neutral finite
value instead of NaN.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from bitsentinel.engine.errors import (
    InsufficientDataError,
    InvalidParameterError,
    MisalignedInputError,
)
from bitsentinel.engine.types import (
    ADXPoint,
    BollingerPoint,
    MACDPoint,
    StochasticPoint,
)

Values = Sequence[float]


@runtime_checkable
class IndicatorLibrary(Protocol):
    """Interface for conventional indicators. Swappable without touching
    the aggregator."""

    def sma(self, values: Values, period: int) -> list[float]: ...

    def ema(self, values: Values, period: int) -> list[float]: ...

    def wma(self, values: Values, period: int) -> list[float]: ...

    def rsi(self, values: Values, period: int = 14) -> list[float]: ...

    def macd(
        self, values: Values, fast: int = 12, slow: int = 26, signal: int = 9
    ) -> list[MACDPoint]: ...

    def stochastic(
        self,
        high: Values,
        low: Values,
        close: Values,
        period: int = 14,
        signal_period: int = 3,
    ) -> list[StochasticPoint]: ...

    def cci(
        self, high: Values, low: Values, close: Values, period: int = 20
    ) -> list[float]: ...

    def williams_r(
        self, high: Values, low: Values, close: Values, period: int = 14
    ) -> list[float]: ...

    def mfi(
        self,
        high: Values,
        low: Values,
        close: Values,
        volume: Values,
        period: int = 14,
    ) -> list[float]: ...

    def roc(self, values: Values, period: int = 12) -> list[float]: ...

    def bollinger_bands(
        self, values: Values, period: int = 20, std_dev: float = 2.0
    ) -> list[BollingerPoint]: ...

    def atr(
        self, high: Values, low: Values, close: Values, period: int = 14
    ) -> list[float]: ...

    def adx(
        self, high: Values, low: Values, close: Values, period: int = 14
    ) -> list[ADXPoint]: ...

    def obv(self, close: Values, volume: Values) -> list[float]: ...

    def vwap(
        self, high: Values, low: Values, close: Values, volume: Values
    ) -> list[float]: ...


# --- Validation helpers ---


def _check_period(name: str, period: int, minimum: int = 1) -> None:
    if period < minimum:
        raise InvalidParameterError(f"{name}: period must be >= {minimum}, got {period}")


def _check_length(name: str, n: int, required: int) -> None:
    if n < required:
        raise InsufficientDataError(name, required, n)


def _columns(name: str, **columns: Values) -> list[np.ndarray]:
    """Convert aligned columns to float arrays, rejecting length mismatch."""
    lengths = {key: len(col) for key, col in columns.items()}
    if len(set(lengths.values())) > 1:
        raise MisalignedInputError(name, lengths)
    return [np.asarray(col, dtype=float) for col in columns.values()]


# --- Array kernels (no validation) ---


def _rolling_max(x: np.ndarray, period: int) -> np.ndarray:
    """Max over [j, j+period) for j in 0..n-period."""
    return sliding_window_view(x, period).max(axis=1)


def _rolling_min(x: np.ndarray, period: int) -> np.ndarray:
    return sliding_window_view(x, period).min(axis=1)


def _rolling_mean(x: np.ndarray, period: int) -> np.ndarray:
    return sliding_window_view(x, period).mean(axis=1)


def _ema(x: np.ndarray, period: int) -> np.ndarray:
    """EMA seeded with the SMA of the first window. Length n - period + 1."""
    out = np.empty(len(x) - period + 1)
    alpha = 2.0 / (period + 1)
    out[0] = x[:period].mean()
    for i in range(1, len(out)):
        out[i] = (x[period - 1 + i] - out[i - 1]) * alpha + out[i - 1]
    return out


def _wilder(x: np.ndarray, period: int) -> np.ndarray:
    """Wilder smoothing seeded with the mean of the first window."""
    out = np.empty(len(x) - period + 1)
    out[0] = x[:period].mean()
    for i in range(1, len(out)):
        out[i] = (out[i - 1] * (period - 1) + x[period - 1 + i]) / period
    return out


def _true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    """True range for indices 1..n-1 (needs the previous close)."""
    prev_close = close[:-1]
    return np.maximum.reduce(
        [
            high[1:] - low[1:],
            np.abs(high[1:] - prev_close),
            np.abs(low[1:] - prev_close),
        ]
    )


def _safe_ratio(num: np.ndarray, den: np.ndarray, fallback: float) -> np.ndarray:
    out = np.full(num.shape, fallback, dtype=float)
    np.divide(num, den, out=out, where=den != 0)
    return out


class NumpyIndicatorLibrary:
    """IndicatorLibrary backed by numpy window views and Wilder smoothing."""

    # --- Moving averages ---

    def sma(self, values: Values, period: int) -> list[float]:
        _check_period("sma", period)
        (x,) = _columns("sma", values=values)
        _check_length("sma", len(x), period)
        return _rolling_mean(x, period).tolist()

    def ema(self, values: Values, period: int) -> list[float]:
        _check_period("ema", period)
        (x,) = _columns("ema", values=values)
        _check_length("ema", len(x), period)
        return _ema(x, period).tolist()

    def wma(self, values: Values, period: int) -> list[float]:
        _check_period("wma", period)
        (x,) = _columns("wma", values=values)
        _check_length("wma", len(x), period)
        weights = np.arange(1, period + 1, dtype=float)
        return (sliding_window_view(x, period) @ weights / weights.sum()).tolist()

    # --- Momentum ---

    def rsi(self, values: Values, period: int = 14) -> list[float]:
        _check_period("rsi", period)
        (x,) = _columns("rsi", values=values)
        _check_length("rsi", len(x), period + 1)

        deltas = np.diff(x)
        avg_gain = _wilder(np.where(deltas > 0, deltas, 0.0), period)
        avg_loss = _wilder(np.where(deltas < 0, -deltas, 0.0), period)

        rs = _safe_ratio(avg_gain, avg_loss, fallback=np.inf)
        rsi = 100.0 - 100.0 / (1.0 + rs)
        # No movement at all in the window: neutral
        rsi[(avg_gain == 0) & (avg_loss == 0)] = 50.0
        return rsi.tolist()

    def macd(
        self, values: Values, fast: int = 12, slow: int = 26, signal: int = 9
    ) -> list[MACDPoint]:
        for p in (fast, slow, signal):
            _check_period("macd", p)
        if fast >= slow:
            raise InvalidParameterError(
                f"macd: fast period must be below slow, got fast={fast} slow={slow}"
            )
        (x,) = _columns("macd", values=values)
        _check_length("macd", len(x), slow + signal - 1)

        line = _ema(x, fast)[slow - fast :] - _ema(x, slow)
        signal_line = _ema(line, signal)
        line = line[signal - 1 :]
        return [
            MACDPoint(macd=m, signal=s, histogram=m - s)
            for m, s in zip(line.tolist(), signal_line.tolist())
        ]

    def stochastic(
        self,
        high: Values,
        low: Values,
        close: Values,
        period: int = 14,
        signal_period: int = 3,
    ) -> list[StochasticPoint]:
        _check_period("stochastic", period)
        _check_period("stochastic", signal_period)
        h, lo, c = _columns("stochastic", high=high, low=low, close=close)
        _check_length("stochastic", len(c), period + signal_period - 1)

        hh = _rolling_max(h, period)
        ll = _rolling_min(lo, period)
        k = 100.0 * _safe_ratio(c[period - 1 :] - ll, hh - ll, fallback=0.5)
        d = _rolling_mean(k, signal_period)
        k = k[signal_period - 1 :]
        return [StochasticPoint(k=kv, d=dv) for kv, dv in zip(k.tolist(), d.tolist())]

    def cci(
        self, high: Values, low: Values, close: Values, period: int = 20
    ) -> list[float]:
        _check_period("cci", period)
        h, lo, c = _columns("cci", high=high, low=low, close=close)
        _check_length("cci", len(c), period)

        typical = (h + lo + c) / 3.0
        windows = sliding_window_view(typical, period)
        mean = windows.mean(axis=1)
        mean_dev = np.abs(windows - mean[:, None]).mean(axis=1)
        return _safe_ratio(typical[period - 1 :] - mean, 0.015 * mean_dev, 0.0).tolist()

    def williams_r(
        self, high: Values, low: Values, close: Values, period: int = 14
    ) -> list[float]:
        _check_period("williams_r", period)
        h, lo, c = _columns("williams_r", high=high, low=low, close=close)
        _check_length("williams_r", len(c), period)

        hh = _rolling_max(h, period)
        ll = _rolling_min(lo, period)
        return (-100.0 * _safe_ratio(hh - c[period - 1 :], hh - ll, 0.5)).tolist()

    def mfi(
        self,
        high: Values,
        low: Values,
        close: Values,
        volume: Values,
        period: int = 14,
    ) -> list[float]:
        _check_period("mfi", period)
        h, lo, c, v = _columns("mfi", high=high, low=low, close=close, volume=volume)
        _check_length("mfi", len(c), period + 1)

        typical = (h + lo + c) / 3.0
        raw_flow = typical[1:] * v[1:]
        change = np.diff(typical)
        positive = sliding_window_view(np.where(change > 0, raw_flow, 0.0), period).sum(axis=1)
        negative = sliding_window_view(np.where(change < 0, raw_flow, 0.0), period).sum(axis=1)

        ratio = _safe_ratio(positive, negative, fallback=np.inf)
        mfi = 100.0 - 100.0 / (1.0 + ratio)
        mfi[(positive == 0) & (negative == 0)] = 50.0
        return mfi.tolist()

    def roc(self, values: Values, period: int = 12) -> list[float]:
        _check_period("roc", period)
        (x,) = _columns("roc", values=values)
        _check_length("roc", len(x), period + 1)
        prior = x[:-period]
        return (100.0 * _safe_ratio(x[period:] - prior, prior, 0.0)).tolist()

    # --- Volatility ---

    def bollinger_bands(
        self, values: Values, period: int = 20, std_dev: float = 2.0
    ) -> list[BollingerPoint]:
        _check_period("bollinger_bands", period)
        (x,) = _columns("bollinger_bands", values=values)
        _check_length("bollinger_bands", len(x), period)

        windows = sliding_window_view(x, period)
        middle = windows.mean(axis=1)
        width = std_dev * windows.std(axis=1)
        upper = middle + width
        lower = middle - width
        pb = _safe_ratio(x[period - 1 :] - lower, upper - lower, 0.5)
        return [
            BollingerPoint(middle=m, upper=u, lower=lo, pb=p)
            for m, u, lo, p in zip(middle.tolist(), upper.tolist(), lower.tolist(), pb.tolist())
        ]

    def atr(
        self, high: Values, low: Values, close: Values, period: int = 14
    ) -> list[float]:
        _check_period("atr", period)
        h, lo, c = _columns("atr", high=high, low=low, close=close)
        _check_length("atr", len(c), period + 1)
        return _wilder(_true_range(h, lo, c), period).tolist()

    # --- Trend ---

    def adx(
        self, high: Values, low: Values, close: Values, period: int = 14
    ) -> list[ADXPoint]:
        _check_period("adx", period)
        h, lo, c = _columns("adx", high=high, low=low, close=close)
        _check_length("adx", len(c), 2 * period)

        up = np.diff(h)
        down = -np.diff(lo)
        plus_dm = np.where((up > down) & (up > 0), up, 0.0)
        minus_dm = np.where((down > up) & (down > 0), down, 0.0)

        tr = _wilder(_true_range(h, lo, c), period)
        plus_di = 100.0 * _safe_ratio(_wilder(plus_dm, period), tr, 0.0)
        minus_di = 100.0 * _safe_ratio(_wilder(minus_dm, period), tr, 0.0)
        dx = 100.0 * _safe_ratio(np.abs(plus_di - minus_di), plus_di + minus_di, 0.0)

        adx = _wilder(dx, period)
        plus_di = plus_di[period - 1 :]
        minus_di = minus_di[period - 1 :]
        return [
            ADXPoint(adx=a, plus_di=p, minus_di=m)
            for a, p, m in zip(adx.tolist(), plus_di.tolist(), minus_di.tolist())
        ]

    # --- Volume ---

    def obv(self, close: Values, volume: Values) -> list[float]:
        c, v = _columns("obv", close=close, volume=volume)
        _check_length("obv", len(c), 2)
        signed = np.sign(np.diff(c)) * v[1:]
        return np.cumsum(signed).tolist()

    def vwap(
        self, high: Values, low: Values, close: Values, volume: Values
    ) -> list[float]:
        h, lo, c, v = _columns("vwap", high=high, low=low, close=close, volume=volume)
        _check_length("vwap", len(c), 1)

        typical = (h + lo + c) / 3.0
        cum_volume = np.cumsum(v)
        vwap = typical.copy()
        np.divide(np.cumsum(typical * v), cum_volume, out=vwap, where=cum_volume != 0)
        return vwap.tolist()
