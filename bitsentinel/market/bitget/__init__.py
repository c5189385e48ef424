"""Bitget USDT-M futures candle source."""

from bitsentinel.market.bitget.source import BitgetCandleSource

__all__ = ["BitgetCandleSource"]
