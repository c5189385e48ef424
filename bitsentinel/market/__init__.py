"""Market data layer.

Re-exports public types, protocols, and errors for convenient imports:
    from bitsentinel.market import Candle, CandleSeries, CandleSource, FetchError
"""

from bitsentinel.market.candle_source import CandleSource
from bitsentinel.market.errors import (
    FetchCancelledError,
    FetchError,
    MalformedCandleError,
    MarketDataError,
    ProviderAPIError,
    ProviderConnectionError,
    ProviderTimeoutError,
    SourceClosedError,
)
from bitsentinel.market.pagination import fetch_range
from bitsentinel.market.types import Candle, CandleSeries, OHLCVColumns

__all__ = [
    "Candle",
    "CandleSeries",
    "CandleSource",
    "FetchCancelledError",
    "FetchError",
    "MalformedCandleError",
    "MarketDataError",
    "OHLCVColumns",
    "ProviderAPIError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "SourceClosedError",
    "fetch_range",
]
