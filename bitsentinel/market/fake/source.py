"""FakeCandleSource: in-memory candle history for testing.

Honours the CandleSource contract (end_time filter, limit, ascending
order) so pagination and aggregation can be tested without a network.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from bitsentinel.market.errors import FetchError
from bitsentinel.market.types import Candle, CandleSeries


@dataclass(frozen=True)
class FetchCall:
    """One recorded fetch_batch() invocation."""

    symbol: str
    interval: str
    limit: int
    end_time: int | None


class FakeCandleSource:
    """In-memory CandleSource for testing.

    Supply the full history at construction. Set ``fail_on_call`` to make
    the n-th call (0-based) raise ``error``.
    """

    def __init__(
        self,
        candles: list[Candle] | None = None,
        max_batch_size: int = 1000,
        fail_on_call: int | None = None,
        error: FetchError | None = None,
    ) -> None:
        self._candles = sorted(candles or [], key=lambda c: c.timestamp)
        self.max_batch_size = max_batch_size
        self._fail_on_call = fail_on_call
        self._error = error or FetchError("fake fetch failure")
        self.calls: list[FetchCall] = []
        self.is_open = False

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def fetch_batch(
        self,
        symbol: str,
        interval: str,
        limit: int,
        end_time: int | None = None,
    ) -> CandleSeries:
        call_index = len(self.calls)
        self.calls.append(FetchCall(symbol, interval, limit, end_time))
        if self._fail_on_call is not None and call_index == self._fail_on_call:
            raise self._error

        eligible = [
            c for c in self._candles if end_time is None or c.timestamp <= end_time
        ]
        batch = eligible[-limit:] if limit > 0 else []
        return CandleSeries(symbol=symbol, interval=interval, candles=tuple(batch))

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.close()
