"""Backward pagination over a CandleSource.

Providers cap a single request (Bitget: 1000 candles). fetch_range() walks
backward in time from the most recent candle, one batch per request, with
a fixed pause between requests to stay under the provider rate limit.
Batches arrive newest-first; each older batch is prepended so the
accumulated list stays ascending at every step.
"""

from __future__ import annotations

import asyncio

import structlog

from bitsentinel.config import MIN_REQUEST_DELAY_SECONDS
from bitsentinel.market.candle_source import CandleSource
from bitsentinel.market.errors import FetchCancelledError
from bitsentinel.market.types import Candle, CandleSeries

log = structlog.get_logger()


def _check_cancelled(
    collected: list[Candle],
    cancel_event: asyncio.Event | None,
    deadline: float | None,
) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise FetchCancelledError("cancelled", list(collected))
    if deadline is not None and asyncio.get_running_loop().time() >= deadline:
        raise FetchCancelledError("timeout", list(collected))


async def fetch_range(
    source: CandleSource,
    symbol: str,
    interval: str,
    total_count: int,
    *,
    delay: float = MIN_REQUEST_DELAY_SECONDS,
    cancel_event: asyncio.Event | None = None,
    timeout: float | None = None,
) -> CandleSeries:
    """Fetch the ``total_count`` most recent candles, across batches if needed.

    Stops early when a batch comes back shorter than requested (no more
    history) or empty; whatever was gathered is returned without error.
    Duplicate timestamps at batch boundaries are not filtered.

    Args:
        source: An open CandleSource.
        symbol: Instrument symbol.
        interval: Candle interval.
        total_count: Number of candles wanted (>= 1).
        delay: Pause between requests in seconds; never below 100 ms.
        cancel_event: When set, aborts the loop before the next request.
        timeout: Overall budget in seconds, checked between requests only.

    Returns:
        CandleSeries ascending, at most ``total_count`` long.

    Raises:
        FetchCancelledError: Cancelled or timed out between batches.
        FetchError: Any provider/transport failure, unmodified.
    """
    if total_count < 1:
        msg = f"total_count must be >= 1, got {total_count}"
        raise ValueError(msg)

    delay = max(delay, MIN_REQUEST_DELAY_SECONDS)
    deadline = (
        asyncio.get_running_loop().time() + timeout if timeout is not None else None
    )

    collected: list[Candle] = []
    end_time: int | None = None
    batches = 0

    while len(collected) < total_count:
        _check_cancelled(collected, cancel_event, deadline)
        if batches:
            await asyncio.sleep(delay)
            _check_cancelled(collected, cancel_event, deadline)

        requested = min(source.max_batch_size, total_count - len(collected))
        batch = await source.fetch_batch(symbol, interval, requested, end_time)
        batches += 1

        if len(batch) == 0:
            log.debug("candle_range_exhausted", batches=batches, collected=len(collected))
            break

        collected[:0] = batch.candles
        end_time = min(c.timestamp for c in batch) - 1

        if len(batch) < requested:
            # Provider has no older history
            break

    result = CandleSeries.from_candles(symbol, interval, collected[-total_count:])
    log.info(
        "candle_range_fetched",
        symbol=symbol,
        interval=interval,
        requested=total_count,
        received=len(result),
        batches=batches,
    )
    return result
