"""Pydantic Settings configuration models.

3-tier config hierarchy (lowest to highest priority):
1. Pydantic defaults (in code below)
2. .env file (loaded by Pydantic Settings)
3. Environment variables (e.g., SENTINEL_INDICATORS__RSI__PERIOD=21)

Per-call indicator overrides use dotted keys on top of the loaded config,
see IndicatorConfig.with_overrides().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_INTERVALS = frozenset({"1m", "5m", "15m", "30m", "1h", "4h", "1d"})
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})

# Bitget caps a single candle request at 1000 rows
PROVIDER_MAX_BATCH_SIZE = 1000
MIN_REQUEST_DELAY_SECONDS = 0.1


class MarketDataConfig(BaseModel):
    """Candle provider connection and pagination settings."""

    provider: str = "bitget"
    base_url: str = "https://api.bitget.com"
    product_type: str = "USDT-FUTURES"
    timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    max_batch_size: int = Field(default=PROVIDER_MAX_BATCH_SIZE, ge=1, le=PROVIDER_MAX_BATCH_SIZE)
    request_delay_seconds: float = Field(
        default=MIN_REQUEST_DELAY_SECONDS,
        ge=MIN_REQUEST_DELAY_SECONDS,
        le=10.0,
    )
    reject_malformed: bool = False
    default_symbol: str = "BTCUSDT"
    default_interval: str = "15m"

    @field_validator("default_interval")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_INTERVALS:
            raise ValueError(
                f"default_interval must be one of {sorted(VALID_INTERVALS)}, got {v}"
            )
        return v


# --- Per-indicator parameter models ---


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def resolve_param(cls, param: str) -> str:
        """Map an accepted alias (e.g. "max") to its field name."""
        for field_name, info in cls.model_fields.items():
            alias = info.validation_alias
            if isinstance(alias, AliasChoices) and param in alias.choices:
                return field_name
        return param


class MovingAverageParams(_Params):
    periods: tuple[int, ...] = (20, 50)

    @field_validator("periods")
    @classmethod
    def validate_periods(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v:
            raise ValueError("At least one moving average period required")
        if any(p < 1 for p in v):
            raise ValueError(f"Moving average periods must be >= 1, got {list(v)}")
        return v


class PeriodParams(_Params):
    period: int = Field(default=14, ge=1)


class MACDParams(_Params):
    fast: int = Field(default=12, ge=1)
    slow: int = Field(default=26, ge=1)
    signal: int = Field(default=9, ge=1)

    @model_validator(mode="after")
    def validate_order(self) -> MACDParams:
        if self.fast >= self.slow:
            raise ValueError(
                f"MACD fast period must be below slow period, got "
                f"fast={self.fast} slow={self.slow}"
            )
        return self


class StochasticParams(_Params):
    period: int = Field(default=14, ge=1)
    signal: int = Field(default=3, ge=1)


class BollingerParams(_Params):
    period: int = Field(default=20, ge=2)
    std_dev: float = Field(default=2.0, gt=0)


class TrailingStopParams(_Params):
    atr_period: int = Field(default=10, ge=1)
    multiplier: float = Field(default=3.0, ge=0)


class StopAndReverseParams(_Params):
    step: float = Field(default=0.02, gt=0, le=1)
    # "max" is the short option name used in per-call overrides
    max_step: float = Field(
        default=0.2,
        gt=0,
        le=1,
        validation_alias=AliasChoices("max_step", "max"),
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> StopAndReverseParams:
        if self.step > self.max_step:
            raise ValueError(
                f"step must not exceed max_step, got step={self.step} "
                f"max_step={self.max_step}"
            )
        return self


class CloudParams(_Params):
    conversion: int = Field(default=9, ge=1)
    base: int = Field(default=26, ge=1)
    span_b: int = Field(default=52, ge=1)


class IndicatorConfig(BaseModel):
    """Window lengths and parameters for every indicator in the bundle."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    sma: MovingAverageParams = MovingAverageParams()
    ema: MovingAverageParams = MovingAverageParams()
    wma: MovingAverageParams = MovingAverageParams(periods=(20,))
    rsi: PeriodParams = PeriodParams(period=14)
    macd: MACDParams = MACDParams()
    stochastic: StochasticParams = StochasticParams()
    cci: PeriodParams = PeriodParams(period=20)
    williams_r: PeriodParams = PeriodParams(period=14)
    mfi: PeriodParams = PeriodParams(period=14)
    roc: PeriodParams = PeriodParams(period=12)
    bollinger: BollingerParams = BollingerParams()
    atr: PeriodParams = PeriodParams(period=14)
    adx: PeriodParams = PeriodParams(period=14)
    trailing_stop: TrailingStopParams = TrailingStopParams()
    stop_and_reverse: StopAndReverseParams = StopAndReverseParams()
    cloud: CloudParams = CloudParams()

    def with_overrides(self, options: Mapping[str, Any] | None) -> IndicatorConfig:
        """Return a copy with dotted-key overrides applied and validated.

        Example: {"rsi.period": 21, "macd.fast": 8, "sma.periods": [10, 30]}.
        A bare "sma.period" is accepted as shorthand for a single period.
        Field aliases work too: "stop_and_reverse.max" sets max_step.

        Raises:
            ValueError: On unknown indicator/parameter names or values that
                fail validation (pydantic.ValidationError is a ValueError).
        """
        if not options:
            return self

        data = self.model_dump()
        for key, value in options.items():
            name, sep, param = key.partition(".")
            if not sep or not param:
                raise ValueError(
                    f"Indicator option must look like 'indicator.param', got {key!r}"
                )
            section = data.get(name)
            if section is None:
                raise ValueError(
                    f"Unknown indicator: {name!r}. Available: {', '.join(sorted(data))}"
                )
            param = type(getattr(self, name)).resolve_param(param)
            if param == "period" and "periods" in section:
                param, value = "periods", [value]
            if param not in section:
                raise ValueError(
                    f"Unknown parameter {param!r} for {name}. "
                    f"Available: {', '.join(sorted(section))}"
                )
            section[param] = value

        return IndicatorConfig.model_validate(data)


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Env var examples:
        SENTINEL_LOG_LEVEL=DEBUG
        SENTINEL_MARKET_DATA__TIMEOUT_SECONDS=5
        SENTINEL_INDICATORS__RSI__PERIOD=21
    """

    model_config = SettingsConfigDict(
        env_prefix="SENTINEL_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"
    market_data: MarketDataConfig = MarketDataConfig()
    indicators: IndicatorConfig = IndicatorConfig()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v}"
            )
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v}"
            )
        return v
