"""Click CLI commands for bitsentinel."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, is_dataclass
from typing import Any

import click

from bitsentinel.config import VALID_INTERVALS, AppConfig
from bitsentinel.engine import IndicatorAggregator, IndicatorBundle
from bitsentinel.market import CandleSeries, FetchError, MalformedCandleError, fetch_range
from bitsentinel.market.bitget import BitgetCandleSource
from bitsentinel.utils.logging import (
    bind_market_context,
    clear_market_context,
    get_logger,
    set_run_id,
    setup_logging,
)
from bitsentinel.utils.time import format_ms

log = get_logger(__name__)

_INTERVAL_CHOICE = click.Choice(sorted(VALID_INTERVALS), case_sensitive=False)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """BitSentinel: technical indicators over exchange candles."""
    config = AppConfig()
    setup_logging(level=config.log_level, log_format=config.log_format)
    ctx.obj = config


def _parse_options(raw: tuple[str, ...]) -> dict[str, Any]:
    """Turn ("rsi.period=21", "sma.periods=[10,30]") into an override dict.

    Values are read as JSON where possible, otherwise kept as strings.
    """
    options: dict[str, Any] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(
                f"expected key=value, got {item!r}", param_hint="--option"
            )
        try:
            options[key.strip()] = json.loads(value)
        except json.JSONDecodeError:
            options[key.strip()] = value
    return options


async def _fetch(
    config: AppConfig,
    symbol: str,
    interval: str,
    count: int,
    timeout: float | None,
) -> CandleSeries:
    """Fetch ``count`` candles from the configured provider."""
    async with BitgetCandleSource(config.market_data) as source:
        return await fetch_range(
            source,
            symbol,
            interval,
            count,
            delay=config.market_data.request_delay_seconds,
            timeout=timeout,
        )


def _load(
    config: AppConfig,
    symbol: str,
    interval: str,
    count: int,
    timeout: float | None,
) -> CandleSeries:
    set_run_id()
    bind_market_context(symbol, interval)
    try:
        return asyncio.run(_fetch(config, symbol, interval, count, timeout))
    except (FetchError, MalformedCandleError) as e:
        log.warning("candle_fetch_failed", error=str(e), count=count)
        raise click.ClickException(f"Candle fetch failed: {e}") from e
    finally:
        clear_market_context()


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    if is_dataclass(value) and not isinstance(value, type):
        parts = []
        for k, v in asdict(value).items():
            parts.append(f"{k}={v:.4f}" if isinstance(v, float) else f"{k}={getattr(v, 'value', v)}")
        return " ".join(parts)
    return f"{value:.4f}"


def _print_summary(bundle: IndicatorBundle, series: CandleSeries) -> None:
    """Print the latest value of every indicator."""
    click.echo(f"\nIndicators: {bundle.symbol} {bundle.interval}")
    if series.first_timestamp is not None and series.last_timestamp is not None:
        click.echo(
            f"Candles:    {len(series)} "
            f"({format_ms(series.first_timestamp)} to {format_ms(series.last_timestamp)})"
        )
    click.echo("")
    for name, value in bundle.latest().items():
        click.echo(f"  {name:<18} {_format_value(value)}")

    if bundle.errors:
        click.echo("\nSkipped:")
        for name, message in bundle.errors.items():
            click.echo(f"  {name:<18} {message}")


@cli.command()
@click.option("--symbol", default=None, help="Instrument symbol (default from config).")
@click.option("--interval", default=None, type=_INTERVAL_CHOICE, help="Candle interval.")
@click.option("--count", default=500, type=click.IntRange(min=1), help="Candles to fetch.")
@click.option(
    "--option",
    "raw_options",
    multiple=True,
    help="Indicator override as key=value, e.g. rsi.period=21. Repeatable.",
)
@click.option("--timeout", default=None, type=float, help="Overall fetch budget in seconds.")
@click.option("--json", "as_json", is_flag=True, help="Print the full bundle as JSON.")
@click.pass_obj
def indicators(
    config: AppConfig,
    symbol: str | None,
    interval: str | None,
    count: int,
    raw_options: tuple[str, ...],
    timeout: float | None,
    as_json: bool,
) -> None:
    """Fetch candles and compute the full indicator bundle."""
    symbol = (symbol or config.market_data.default_symbol).upper()
    interval = (interval or config.market_data.default_interval).lower()
    options = _parse_options(raw_options)

    aggregator = IndicatorAggregator(config.indicators)
    try:
        # Validate overrides before spending requests on the fetch
        aggregator.config.with_overrides(options)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--option") from e

    series = _load(config, symbol, interval, count, timeout)
    bundle = aggregator.compute_all(series, options)

    if as_json:
        click.echo(json.dumps(bundle.to_dict()))
    else:
        _print_summary(bundle, series)


@cli.command()
@click.option("--symbol", default=None, help="Instrument symbol (default from config).")
@click.option("--interval", default=None, type=_INTERVAL_CHOICE, help="Candle interval.")
@click.option("--count", default=100, type=click.IntRange(min=1), help="Candles to fetch.")
@click.option("--timeout", default=None, type=float, help="Overall fetch budget in seconds.")
@click.pass_obj
def candles(
    config: AppConfig,
    symbol: str | None,
    interval: str | None,
    count: int,
    timeout: float | None,
) -> None:
    """Fetch candles and print them oldest first."""
    symbol = (symbol or config.market_data.default_symbol).upper()
    interval = (interval or config.market_data.default_interval).lower()
    series = _load(config, symbol, interval, count, timeout)

    for c in series:
        click.echo(
            f"{format_ms(c.timestamp)}  O={c.open} H={c.high} "
            f"L={c.low} C={c.close} V={c.volume}"
        )


@cli.command()
@click.pass_obj
def config(cfg: AppConfig) -> None:
    """Show current configuration."""
    md = cfg.market_data
    ind = cfg.indicators

    click.echo("=== BitSentinel Configuration ===\n")

    click.echo(f"Log Level:    {cfg.log_level}")
    click.echo(f"Log Format:   {cfg.log_format}")
    click.echo("")

    click.echo("[Market Data]")
    click.echo(f"  Provider:      {md.provider}")
    click.echo(f"  Base URL:      {md.base_url}")
    click.echo(f"  Product Type:  {md.product_type}")
    click.echo(f"  Batch Size:    {md.max_batch_size}")
    click.echo(f"  Request Delay: {md.request_delay_seconds}s")
    click.echo(f"  Reject Bad:    {md.reject_malformed}")
    click.echo(f"  Default:       {md.default_symbol} {md.default_interval}")
    click.echo("")

    click.echo("[Indicators]")
    for name, params in ind.model_dump().items():
        rendered = ", ".join(f"{k}={v}" for k, v in params.items())
        click.echo(f"  {name:<17} {rendered}")
