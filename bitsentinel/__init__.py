"""BitSentinel: technical indicator engine over exchange OHLCV candles."""

__version__ = "0.1.0"
