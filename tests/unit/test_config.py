"""Tests for configuration system."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from bitsentinel.config import (
    AppConfig,
    IndicatorConfig,
    MACDParams,
    MarketDataConfig,
    MovingAverageParams,
    StopAndReverseParams,
)


class TestDefaultConfig:
    """Test that default configuration loads correctly."""

    def test_default_config_loads(self) -> None:
        config = AppConfig()
        assert config.log_level == "INFO"
        assert config.log_format == "console"
        assert config.market_data.provider == "bitget"
        assert config.market_data.max_batch_size == 1000
        assert config.market_data.request_delay_seconds == 0.1
        assert config.market_data.reject_malformed is False

    def test_default_indicator_parameters(self) -> None:
        ind = IndicatorConfig()
        assert ind.sma.periods == (20, 50)
        assert ind.wma.periods == (20,)
        assert ind.rsi.period == 14
        assert (ind.macd.fast, ind.macd.slow, ind.macd.signal) == (12, 26, 9)
        assert ind.cci.period == 20
        assert ind.roc.period == 12
        assert ind.bollinger.std_dev == 2.0
        assert ind.trailing_stop.atr_period == 10
        assert ind.trailing_stop.multiplier == 3.0
        assert ind.stop_and_reverse.step == 0.02
        assert ind.stop_and_reverse.max_step == 0.2
        assert (ind.cloud.conversion, ind.cloud.base, ind.cloud.span_b) == (9, 26, 52)


class TestEnvOverrides:
    """Test environment variable override behavior."""

    def test_log_level(self) -> None:
        with patch.dict(os.environ, {"SENTINEL_LOG_LEVEL": "debug"}):
            assert AppConfig().log_level == "DEBUG"

    def test_nested_indicator_period(self) -> None:
        with patch.dict(os.environ, {"SENTINEL_INDICATORS__RSI__PERIOD": "21"}):
            config = AppConfig()
        assert config.indicators.rsi.period == 21
        assert config.indicators.macd.fast == 12

    def test_market_data_field(self) -> None:
        with patch.dict(os.environ, {"SENTINEL_MARKET_DATA__MAX_BATCH_SIZE": "250"}):
            assert AppConfig().market_data.max_batch_size == 250

    def test_invalid_log_format(self) -> None:
        with patch.dict(os.environ, {"SENTINEL_LOG_FORMAT": "xml"}):
            with pytest.raises(ValidationError):
                AppConfig()


class TestValidation:
    """Field and model validators."""

    def test_batch_size_capped_by_provider(self) -> None:
        with pytest.raises(ValidationError):
            MarketDataConfig(max_batch_size=1001)

    def test_request_delay_floor(self) -> None:
        with pytest.raises(ValidationError):
            MarketDataConfig(request_delay_seconds=0.05)

    def test_default_interval_normalised(self) -> None:
        assert MarketDataConfig(default_interval="1H").default_interval == "1h"

    def test_unknown_default_interval(self) -> None:
        with pytest.raises(ValidationError):
            MarketDataConfig(default_interval="2h")

    def test_macd_fast_below_slow(self) -> None:
        with pytest.raises(ValidationError, match="fast"):
            MACDParams(fast=26, slow=12)

    def test_step_not_above_max_step(self) -> None:
        with pytest.raises(ValidationError):
            StopAndReverseParams(step=0.3, max_step=0.2)

    def test_empty_periods(self) -> None:
        with pytest.raises(ValidationError):
            MovingAverageParams(periods=())

    def test_params_reject_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            IndicatorConfig.model_validate({"rsi": {"length": 3}})


class TestWithOverrides:
    """Dotted per-call overrides."""

    def test_none_returns_same_instance(self) -> None:
        config = IndicatorConfig()
        assert config.with_overrides(None) is config
        assert config.with_overrides({}) is config

    def test_applies_override(self) -> None:
        updated = IndicatorConfig().with_overrides({"rsi.period": 21, "macd.fast": 8})
        assert updated.rsi.period == 21
        assert updated.macd.fast == 8
        assert updated.macd.slow == 26

    def test_period_shorthand_for_moving_averages(self) -> None:
        updated = IndicatorConfig().with_overrides({"sma.period": 30})
        assert updated.sma.periods == (30,)

    def test_original_unchanged(self) -> None:
        config = IndicatorConfig()
        config.with_overrides({"rsi.period": 21})
        assert config.rsi.period == 14

    def test_unknown_indicator(self) -> None:
        with pytest.raises(ValueError, match="Unknown indicator"):
            IndicatorConfig().with_overrides({"supertrend.period": 3})

    def test_unknown_parameter(self) -> None:
        with pytest.raises(ValueError, match="Unknown parameter"):
            IndicatorConfig().with_overrides({"rsi.window": 3})

    def test_malformed_key(self) -> None:
        with pytest.raises(ValueError, match="indicator.param"):
            IndicatorConfig().with_overrides({"rsi": 3})

    def test_invalid_value(self) -> None:
        with pytest.raises(ValidationError):
            IndicatorConfig().with_overrides({"bollinger.period": 1})

    def test_stop_and_reverse_max_alias(self) -> None:
        updated = IndicatorConfig().with_overrides({"stop_and_reverse.max": 0.3})
        assert updated.stop_and_reverse.max_step == 0.3
        assert updated.stop_and_reverse.step == 0.02

    def test_max_alias_still_validated(self) -> None:
        with pytest.raises(ValidationError):
            IndicatorConfig().with_overrides(
                {"stop_and_reverse.step": 0.5, "stop_and_reverse.max": 0.3}
            )

    def test_max_alias_in_model_data(self) -> None:
        params = StopAndReverseParams.model_validate({"max": 0.4})
        assert params.max_step == 0.4
        assert StopAndReverseParams(max_step=0.4).max_step == 0.4
