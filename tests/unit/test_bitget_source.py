"""Tests for BitgetCandleSource using httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from bitsentinel.config import MarketDataConfig
from bitsentinel.market.bitget.source import CANDLES_PATH, BitgetCandleSource
from bitsentinel.market.candle_source import CandleSource
from bitsentinel.market.errors import (
    MalformedCandleError,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderTimeoutError,
    SourceClosedError,
)

Handler = Callable[[httpx.Request], httpx.Response]

# Newest first, as Bitget sometimes returns them
ROWS = [
    ["1770735720000", "97050", "97200", "97000", "97150", "8.1", "786315"],
    ["1770735600000", "97000", "97100", "96900", "97050", "12.5", "1212500"],
    ["1770735660000", "97050", "97080", "96990", "97000", "4.0", "388000"],
]


def _ok(rows: list[list[str]] = ROWS) -> httpx.Response:
    return httpx.Response(200, json={"code": "00000", "msg": "success", "data": rows})


def _source(handler: Handler, **config: object) -> BitgetCandleSource:
    client = httpx.AsyncClient(
        base_url="https://api.bitget.com",
        transport=httpx.MockTransport(handler),
    )
    return BitgetCandleSource(MarketDataConfig(**config), client=client)


class TestRequest:
    """Outgoing request shape."""

    async def test_params(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _ok()

        source = _source(handler)
        await source.fetch_batch("BTCUSDT", "1h", 500, end_time=1770735600000)

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == CANDLES_PATH
        params = request.url.params
        assert params["symbol"] == "BTCUSDT"
        assert params["productType"] == "USDT-FUTURES"
        assert params["granularity"] == "1H"
        assert params["limit"] == "500"
        assert params["endTime"] == "1770735600000"

    async def test_end_time_omitted_when_none(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _ok()

        await _source(handler).fetch_batch("BTCUSDT", "15m", 10)

        assert "endTime" not in seen[0].url.params

    async def test_unsupported_interval(self) -> None:
        source = _source(lambda request: _ok())
        with pytest.raises(ValueError, match="Unsupported interval"):
            await source.fetch_batch("BTCUSDT", "2h", 10)

    @pytest.mark.parametrize("limit", [0, 1001])
    async def test_limit_out_of_range(self, limit: int) -> None:
        source = _source(lambda request: _ok())
        with pytest.raises(ValueError, match="limit"):
            await source.fetch_batch("BTCUSDT", "1m", limit)


class TestResponse:
    """Envelope decoding and candle conversion."""

    async def test_candles_sorted_ascending(self) -> None:
        batch = await _source(lambda request: _ok()).fetch_batch("BTCUSDT", "1m", 3)

        assert [c.timestamp for c in batch] == [
            1770735600000,
            1770735660000,
            1770735720000,
        ]
        assert batch.symbol == "BTCUSDT"
        assert batch.interval == "1m"
        assert batch[0].volume == 12.5

    async def test_empty_data(self) -> None:
        batch = await _source(lambda request: _ok([])).fetch_batch("BTCUSDT", "1m", 3)
        assert len(batch) == 0

    async def test_error_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"code": "40034", "msg": "Parameter does not exist"}
            )

        with pytest.raises(ProviderAPIError) as exc_info:
            await _source(handler).fetch_batch("NOPE", "1m", 3)

        assert exc_info.value.code == "40034"
        assert exc_info.value.status_code == 200
        assert "Parameter does not exist" in str(exc_info.value)

    async def test_http_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"code": "429", "msg": "Too Many Requests"})

        with pytest.raises(ProviderAPIError) as exc_info:
            await _source(handler).fetch_batch("BTCUSDT", "1m", 3)

        assert exc_info.value.status_code == 429

    async def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad Gateway</html>")

        with pytest.raises(ProviderAPIError) as exc_info:
            await _source(handler).fetch_batch("BTCUSDT", "1m", 3)

        assert exc_info.value.code == "invalid_json"
        assert exc_info.value.status_code == 502

    async def test_non_object_envelope(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1, 2, 3])

        with pytest.raises(ProviderAPIError, match="invalid_envelope"):
            await _source(handler).fetch_batch("BTCUSDT", "1m", 3)

    async def test_malformed_rejected_when_configured(self) -> None:
        rows = [["1770735600000", "100", "101", "99", "105", "1", "1"]]
        source = _source(lambda request: _ok(rows), reject_malformed=True)
        with pytest.raises(MalformedCandleError):
            await source.fetch_batch("BTCUSDT", "1m", 1)

    async def test_malformed_passed_through_by_default(self) -> None:
        rows = [["1770735600000", "100", "101", "99", "105", "1", "1"]]
        batch = await _source(lambda request: _ok(rows)).fetch_batch("BTCUSDT", "1m", 1)
        assert len(batch) == 1


class TestTransportErrors:
    async def test_connect_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderConnectionError, match="connection refused"):
            await _source(handler).fetch_batch("BTCUSDT", "1m", 3)

    async def test_read_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderTimeoutError):
            await _source(handler).fetch_batch("BTCUSDT", "1m", 3)


class TestLifecycle:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(BitgetCandleSource(MarketDataConfig()), CandleSource)

    async def test_fetch_before_open(self) -> None:
        source = BitgetCandleSource(MarketDataConfig())
        assert source.is_open is False
        with pytest.raises(SourceClosedError):
            await source.fetch_batch("BTCUSDT", "1m", 3)

    async def test_open_and_close(self) -> None:
        source = BitgetCandleSource(MarketDataConfig())
        async with source:
            assert source.is_open is True
        assert source.is_open is False

    async def test_injected_client_not_closed(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: _ok()))
        async with BitgetCandleSource(MarketDataConfig(), client=client):
            pass
        assert client.is_closed is False
        await client.aclose()

    def test_max_batch_size_from_config(self) -> None:
        source = BitgetCandleSource(MarketDataConfig(max_batch_size=200))
        assert source.max_batch_size == 200
