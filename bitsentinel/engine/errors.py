"""Indicator error hierarchy.

All indicator exceptions inherit from IndicatorError. The aggregator
isolates them per indicator; direct callers of the library or trend engine
see them raised.
"""

from __future__ import annotations


class IndicatorError(Exception):
    """Base exception for all indicator computation errors."""


class InsufficientDataError(IndicatorError):
    """Series shorter than the indicator's minimum look-back."""

    def __init__(self, indicator: str, required: int, available: int) -> None:
        self.indicator = indicator
        self.required = required
        self.available = available
        super().__init__(
            f"{indicator}: need at least {required} candles, got {available}"
        )


class MisalignedInputError(IndicatorError):
    """Input columns that must be index-aligned have different lengths."""

    def __init__(self, indicator: str, lengths: dict[str, int]) -> None:
        self.indicator = indicator
        self.lengths = lengths
        detail = ", ".join(f"{k}={v}" for k, v in lengths.items())
        super().__init__(f"{indicator}: input columns differ in length ({detail})")


class InvalidParameterError(IndicatorError, ValueError):
    """Indicator parameter out of range (period < 1, step > max_step, ...)."""
