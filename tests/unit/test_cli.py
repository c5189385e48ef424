"""Tests for CLI commands."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
import structlog
from click.testing import CliRunner

from bitsentinel.cli.commands import cli
from bitsentinel.market.errors import ProviderAPIError
from bitsentinel.market.types import CandleSeries
from tests.factories import make_series, make_wave_candles


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def series() -> CandleSeries:
    return make_series(make_wave_candles(200))


class TestCliHelp:
    """Test CLI help output."""

    def test_cli_help_shows_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "indicators" in result.output
        assert "candles" in result.output
        assert "config" in result.output

    def test_indicators_help_shows_options(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["indicators", "--help"])
        assert result.exit_code == 0
        for option in ("--symbol", "--interval", "--count", "--option", "--timeout", "--json"):
            assert option in result.output


class TestConfigCommand:
    def test_shows_sections(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config"])
        assert result.exit_code == 0
        assert "[Market Data]" in result.output
        assert "[Indicators]" in result.output
        assert "bitget" in result.output
        assert "stop_and_reverse" in result.output


class TestIndicatorsCommand:
    """Fetch is patched out; the aggregator runs for real."""

    def test_summary(self, runner: CliRunner, series: CandleSeries) -> None:
        with patch(
            "bitsentinel.cli.commands._fetch", new=AsyncMock(return_value=series)
        ) as fetch:
            result = runner.invoke(
                cli, ["indicators", "--symbol", "ethusdt", "--interval", "1h", "--count", "300"]
            )

        assert result.exit_code == 0, result.output
        assert "Indicators: BTCUSDT 1m" in result.output
        assert "rsi" in result.output
        assert "trailing_stop" in result.output
        assert "Skipped" not in result.output

        args = fetch.await_args.args
        assert args[1:] == ("ETHUSDT", "1h", 300, None)

    def test_json_output(self, runner: CliRunner, series: CandleSeries) -> None:
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(return_value=series)):
            result = runner.invoke(cli, ["indicators", "--json", "--option", "rsi.period=7"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout.strip().splitlines()[-1])
        assert data["candle_count"] == 200
        assert len(data["indicators"]["rsi"]) == 200 - 7
        assert data["errors"] == {}

    def test_list_option_value(self, runner: CliRunner, series: CandleSeries) -> None:
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(return_value=series)):
            result = runner.invoke(
                cli, ["indicators", "--json", "--option", "sma.periods=[5,10]"]
            )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout.strip().splitlines()[-1])
        assert "sma_5" in data["indicators"]
        assert "sma_50" not in data["indicators"]

    def test_short_history_lists_skipped(self, runner: CliRunner) -> None:
        short = make_series(make_wave_candles(30))
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(return_value=short)):
            result = runner.invoke(cli, ["indicators"])

        assert result.exit_code == 0, result.output
        assert "Skipped:" in result.output
        assert "cloud" in result.output

    @pytest.mark.parametrize("option", ["rsi.window=3", "nope.period=3", "rsi"])
    def test_bad_option_fails_before_fetch(self, runner: CliRunner, option: str) -> None:
        fetch = AsyncMock()
        with patch("bitsentinel.cli.commands._fetch", new=fetch):
            result = runner.invoke(cli, ["indicators", "--option", option])

        assert result.exit_code != 0
        fetch.assert_not_called()

    def test_fetch_failure(self, runner: CliRunner) -> None:
        error = ProviderAPIError(429, "429", "Too Many Requests")
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["indicators"])

        assert result.exit_code == 1
        assert "Candle fetch failed" in result.output

    def test_unknown_interval_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["indicators", "--interval", "2h"])
        assert result.exit_code != 0


class TestCandlesCommand:
    def test_prints_candles_oldest_first(self, runner: CliRunner) -> None:
        series = make_series(make_wave_candles(3))
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(return_value=series)):
            result = runner.invoke(cli, ["candles", "--count", "3"])

        assert result.exit_code == 0, result.output
        lines = [line for line in result.stdout.splitlines() if line.startswith("2026-02-10T")]
        assert lines[0].startswith("2026-02-10T15:00:00Z")
        assert lines[2].startswith("2026-02-10T15:02:00Z")


class TestMarketContext:
    """_load binds symbol/interval for its log lines and unbinds them after."""

    def test_cleared_after_success(self, runner: CliRunner, series: CandleSeries) -> None:
        structlog.contextvars.clear_contextvars()
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(return_value=series)):
            result = runner.invoke(cli, ["candles", "--count", "3"])

        assert result.exit_code == 0, result.output
        assert "symbol" not in structlog.contextvars.get_contextvars()
        assert "interval" not in structlog.contextvars.get_contextvars()

    def test_cleared_after_failure(self, runner: CliRunner) -> None:
        structlog.contextvars.clear_contextvars()
        error = ProviderAPIError(500, "500", "Internal")
        with patch("bitsentinel.cli.commands._fetch", new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["candles"])

        assert result.exit_code == 1
        assert "symbol" not in structlog.contextvars.get_contextvars()
