"""CandleSource protocol: abstract interface for historical candle providers.

All candle provider implementations (Bitget, fake) must satisfy this protocol.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from bitsentinel.market.types import CandleSeries


@runtime_checkable
class CandleSource(Protocol):
    """Async interface for fetching one batch of historical candles.

    Implementations must support ``async with`` for lifecycle management.
    Pagination across batches lives in ``bitsentinel.market.pagination``,
    not in the source.
    """

    max_batch_size: int

    async def fetch_batch(
        self,
        symbol: str,
        interval: str,
        limit: int,
        end_time: int | None = None,
    ) -> CandleSeries:
        """Fetch up to ``limit`` candles ending at or before ``end_time``.

        Args:
            symbol: Instrument symbol (e.g. "BTCUSDT").
            interval: Candle interval (1m, 5m, 15m, 30m, 1h, 4h, 1d).
            limit: Maximum number of candles, at most ``max_batch_size``.
            end_time: Inclusive upper bound in epoch ms; most recent if None.

        Returns:
            CandleSeries ordered by timestamp ascending.

        Raises:
            FetchError: On transport or provider failure.
        """
        ...

    async def open(self) -> None:
        """Acquire transport resources."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...

    async def __aenter__(self) -> CandleSource:
        """Open on context manager entry."""
        ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close on context manager exit."""
        ...
