"""Market data error hierarchy.

All candle-source exceptions inherit from MarketDataError. Fetch failures
(transport, provider, cancellation) share the FetchError base so callers
can handle "the fetch did not complete" in one place. Nothing here is
retried; retry policy belongs to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bitsentinel.market.types import Candle


class MarketDataError(Exception):
    """Base exception for all market data errors."""


class FetchError(MarketDataError):
    """A candle fetch did not complete."""


class ProviderConnectionError(FetchError):
    """Transport failure: DNS, refused connection, dropped socket."""


class ProviderTimeoutError(FetchError):
    """The provider did not answer within the configured timeout."""


class ProviderAPIError(FetchError):
    """Provider answered with a non-success HTTP status or envelope code.

    Stores the HTTP status, the provider's own error code and its message.
    """

    def __init__(self, status_code: int, code: str, message: str) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"Provider API error {status_code} (code {code}): {message}")


class FetchCancelledError(FetchError):
    """Pagination aborted between batches by cancellation or timeout.

    Carries the candles accumulated before the abort, ascending.
    """

    def __init__(self, reason: str, candles: list[Candle] | None = None) -> None:
        self.reason = reason
        self.candles: list[Candle] = candles if candles is not None else []
        super().__init__(
            f"Candle fetch cancelled ({reason}) after {len(self.candles)} candles"
        )


class MalformedCandleError(MarketDataError):
    """A provider row could not be turned into a valid Candle."""

    def __init__(self, row: Any, reason: str) -> None:
        self.row = row
        self.reason = reason
        super().__init__(f"Malformed candle {row!r}: {reason}")


class SourceClosedError(MarketDataError):
    """fetch_batch() called before open() or after close()."""
