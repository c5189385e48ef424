"""BitgetCandleSource: historical candles from the Bitget mix-market REST API.

One request per fetch_batch() call against GET /api/v2/mix/market/candles.
The HTTP client is an httpx.AsyncClient owned by the source unless one is
injected (tests pass a client backed by httpx.MockTransport).
"""

from __future__ import annotations

from typing import Any, Self

import httpx
import structlog

from bitsentinel.config import MarketDataConfig
from bitsentinel.market.bitget.mappers import (
    SUCCESS_CODE,
    rows_to_candles,
    to_granularity,
)
from bitsentinel.market.errors import (
    ProviderAPIError,
    ProviderConnectionError,
    ProviderTimeoutError,
    SourceClosedError,
)
from bitsentinel.market.types import CandleSeries

log = structlog.get_logger()

CANDLES_PATH = "/api/v2/mix/market/candles"


class BitgetCandleSource:
    """CandleSource implementation backed by Bitget's public REST API."""

    def __init__(
        self,
        config: MarketDataConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self.max_batch_size = config.max_batch_size

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def open(self) -> None:
        """Create the HTTP client if none was injected."""
        if self.is_open:
            return
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout_seconds,
            headers={"Content-Type": "application/json"},
        )
        self._owns_client = True
        log.debug("bitget_source_opened", base_url=self._config.base_url)

    async def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            log.debug("bitget_source_closed")

    async def fetch_batch(
        self,
        symbol: str,
        interval: str,
        limit: int,
        end_time: int | None = None,
    ) -> CandleSeries:
        """Fetch one batch of candles, ascending by timestamp."""
        if not self.is_open:
            raise SourceClosedError("Source not open. Call open() or use 'async with'.")
        if not 1 <= limit <= self.max_batch_size:
            msg = f"limit must be between 1 and {self.max_batch_size}, got {limit}"
            raise ValueError(msg)

        params: dict[str, str] = {
            "symbol": symbol,
            "productType": self._config.product_type,
            "granularity": to_granularity(interval),
            "limit": str(limit),
        }
        if end_time is not None:
            params["endTime"] = str(end_time)

        assert self._client is not None
        try:
            response = await self._client.get(CANDLES_PATH, params=params)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Bitget candle request timed out for {symbol} {interval}: {e}"
            ) from e
        except httpx.TransportError as e:
            raise ProviderConnectionError(
                f"Bitget candle request failed for {symbol} {interval}: {e}"
            ) from e

        payload = self._decode(response)
        candles = rows_to_candles(
            payload.get("data"),
            reject_malformed=self._config.reject_malformed,
        )

        log.debug(
            "candle_batch_fetched",
            symbol=symbol,
            interval=interval,
            requested=limit,
            received=len(candles),
            end_time=end_time,
        )
        return CandleSeries(symbol=symbol, interval=interval, candles=tuple(candles))

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        """Unwrap the {code, msg, data} envelope or raise ProviderAPIError."""
        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderAPIError(
                response.status_code,
                "invalid_json",
                response.text[:200],
            ) from e

        if not isinstance(payload, dict):
            raise ProviderAPIError(
                response.status_code,
                "invalid_envelope",
                f"expected object, got {type(payload).__name__}",
            )

        code = str(payload.get("code", ""))
        if response.is_error or code != SUCCESS_CODE:
            raise ProviderAPIError(
                response.status_code,
                code or "unknown",
                str(payload.get("msg") or "Unknown error"),
            )
        return payload

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close on context manager exit.

        Wraps close in try/except to avoid masking the original exception.
        """
        try:
            await self.close()
        except Exception:
            log.exception("Error during close in __aexit__")
