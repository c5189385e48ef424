"""Indicator aggregation over one candle series.

IndicatorAggregator extracts the OHLCV columns once, runs every standard
and trend indicator with the configured parameters, and returns an
IndicatorBundle. A failing indicator is isolated: its entry is left empty,
the error message is recorded in ``bundle.errors``, and the remaining
indicators still run.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from functools import partial
from typing import Any

import structlog

from bitsentinel.config import IndicatorConfig
from bitsentinel.engine import trend
from bitsentinel.engine.errors import IndicatorError, InsufficientDataError
from bitsentinel.engine.library import IndicatorLibrary, NumpyIndicatorLibrary
from bitsentinel.market.types import CandleSeries, OHLCVColumns

log = structlog.get_logger()


def _to_plain(value: Any) -> Any:
    """Point dataclass -> dict with enum members replaced by their values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {
            k: (v.value if isinstance(v, Enum) else v) for k, v in asdict(value).items()
        }
    return value


@dataclass(frozen=True)
class IndicatorBundle:
    """Indicator name -> output series, aligned to a suffix of the input.

    Failed indicators map to an empty list and have an entry in ``errors``.
    """

    symbol: str
    interval: str
    candle_count: int
    values: dict[str, list[Any]]
    errors: dict[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> list[Any]:
        return self.values[name]

    def __contains__(self, name: object) -> bool:
        return name in self.values

    @property
    def names(self) -> list[str]:
        return list(self.values)

    def latest(self) -> dict[str, Any]:
        """Most recent value per indicator (None where the series is empty)."""
        return {name: (series[-1] if series else None) for name, series in self.values.items()}

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation for an API layer or CLI output."""
        return {
            "symbol": self.symbol,
            "interval": self.interval,
            "candle_count": self.candle_count,
            "indicators": {
                name: [_to_plain(p) for p in series] for name, series in self.values.items()
            },
            "errors": dict(self.errors),
        }


class IndicatorAggregator:
    """Runs the full indicator battery over a CandleSeries.

    Stateless between calls: each compute_all() owns its columns and trend
    state, so one aggregator can be shared across concurrent callers.
    """

    def __init__(
        self,
        config: IndicatorConfig | None = None,
        library: IndicatorLibrary | None = None,
    ) -> None:
        self._config = config or IndicatorConfig()
        self._library: IndicatorLibrary = library or NumpyIndicatorLibrary()

    @property
    def config(self) -> IndicatorConfig:
        return self._config

    def compute_all(
        self,
        series: CandleSeries,
        options: Mapping[str, Any] | None = None,
    ) -> IndicatorBundle:
        """Compute every indicator for ``series``.

        Args:
            series: Candles ascending by timestamp.
            options: Dotted overrides, e.g. {"rsi.period": 21}.

        Raises:
            ValueError: If ``options`` names an unknown indicator or
                parameter, or a value fails validation.
        """
        return self.compute_columns(
            series.columns(),
            options,
            symbol=series.symbol,
            interval=series.interval,
        )

    def compute_columns(
        self,
        columns: OHLCVColumns,
        options: Mapping[str, Any] | None = None,
        *,
        symbol: str = "",
        interval: str = "",
    ) -> IndicatorBundle:
        """Compute every indicator from pre-extracted columns."""
        cfg = self._config.with_overrides(options)

        values: dict[str, list[Any]] = {}
        errors: dict[str, str] = {}
        for name, job in self._jobs(columns, cfg):
            try:
                values[name] = job()
            except InsufficientDataError as e:
                log.info(
                    "indicator_insufficient_data",
                    indicator=name,
                    required=e.required,
                    available=e.available,
                )
                values[name] = []
                errors[name] = str(e)
            except IndicatorError as e:
                log.warning("indicator_failed", indicator=name, error=str(e))
                values[name] = []
                errors[name] = str(e)
            except Exception as e:
                log.exception("indicator_failed", indicator=name)
                values[name] = []
                errors[name] = str(e) or type(e).__name__

        log.debug(
            "indicators_computed",
            symbol=symbol,
            interval=interval,
            candles=len(columns),
            computed=len(values) - len(errors),
            failed=len(errors),
        )
        return IndicatorBundle(
            symbol=symbol,
            interval=interval,
            candle_count=len(columns),
            values=values,
            errors=errors,
        )

    def _jobs(
        self,
        columns: OHLCVColumns,
        cfg: IndicatorConfig,
    ) -> list[tuple[str, Callable[[], list[Any]]]]:
        """(output key, thunk) for every indicator, in bundle order."""
        lib = self._library
        h, lo, c, v = columns.high, columns.low, columns.close, columns.volume

        jobs: list[tuple[str, Callable[[], list[Any]]]] = []
        for p in cfg.sma.periods:
            jobs.append((f"sma_{p}", partial(lib.sma, c, p)))
        for p in cfg.ema.periods:
            jobs.append((f"ema_{p}", partial(lib.ema, c, p)))
        for p in cfg.wma.periods:
            jobs.append((f"wma_{p}", partial(lib.wma, c, p)))

        jobs += [
            ("rsi", partial(lib.rsi, c, cfg.rsi.period)),
            ("macd", partial(lib.macd, c, cfg.macd.fast, cfg.macd.slow, cfg.macd.signal)),
            (
                "stochastic",
                partial(lib.stochastic, h, lo, c, cfg.stochastic.period, cfg.stochastic.signal),
            ),
            ("cci", partial(lib.cci, h, lo, c, cfg.cci.period)),
            ("williams_r", partial(lib.williams_r, h, lo, c, cfg.williams_r.period)),
            ("mfi", partial(lib.mfi, h, lo, c, v, cfg.mfi.period)),
            ("roc", partial(lib.roc, c, cfg.roc.period)),
            (
                "bollinger_bands",
                partial(lib.bollinger_bands, c, cfg.bollinger.period, cfg.bollinger.std_dev),
            ),
            ("atr", partial(lib.atr, h, lo, c, cfg.atr.period)),
            ("adx", partial(lib.adx, h, lo, c, cfg.adx.period)),
            ("obv", partial(lib.obv, c, v)),
            ("vwap", partial(lib.vwap, h, lo, c, v)),
            (
                "trailing_stop",
                partial(
                    trend.trailing_stop_bands,
                    h,
                    lo,
                    c,
                    cfg.trailing_stop.atr_period,
                    cfg.trailing_stop.multiplier,
                    lib,
                ),
            ),
            (
                "cloud",
                partial(
                    trend.cloud,
                    h,
                    lo,
                    c,
                    cfg.cloud.conversion,
                    cfg.cloud.base,
                    cfg.cloud.span_b,
                ),
            ),
            (
                "stop_and_reverse",
                partial(
                    trend.stop_and_reverse,
                    h,
                    lo,
                    c,
                    cfg.stop_and_reverse.step,
                    cfg.stop_and_reverse.max_step,
                ),
            ),
        ]
        return jobs


def compute_all(
    series: CandleSeries,
    options: Mapping[str, Any] | None = None,
    config: IndicatorConfig | None = None,
) -> IndicatorBundle:
    """Convenience wrapper: compute the full bundle with a fresh aggregator."""
    return IndicatorAggregator(config).compute_all(series, options)
