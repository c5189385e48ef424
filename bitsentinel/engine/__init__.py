"""Engine layer: standard indicators, stateful trend indicators, aggregation."""

from bitsentinel.engine.aggregator import IndicatorAggregator, IndicatorBundle, compute_all
from bitsentinel.engine.errors import (
    IndicatorError,
    InsufficientDataError,
    InvalidParameterError,
    MisalignedInputError,
)
from bitsentinel.engine.library import IndicatorLibrary, NumpyIndicatorLibrary
from bitsentinel.engine.trend import (
    cloud,
    stop_and_reverse,
    stop_and_reverse_states,
    trailing_stop_bands,
)
from bitsentinel.engine.types import (
    ADXPoint,
    BollingerPoint,
    CloudPoint,
    Direction,
    MACDPoint,
    Signal,
    StochasticPoint,
    StopAndReversePoint,
    TrailingStopPoint,
    TrendState,
)

__all__ = [
    "ADXPoint",
    "BollingerPoint",
    "CloudPoint",
    "Direction",
    "IndicatorAggregator",
    "IndicatorBundle",
    "IndicatorError",
    "IndicatorLibrary",
    "InsufficientDataError",
    "InvalidParameterError",
    "MACDPoint",
    "MisalignedInputError",
    "NumpyIndicatorLibrary",
    "Signal",
    "StochasticPoint",
    "StopAndReversePoint",
    "TrailingStopPoint",
    "TrendState",
    "cloud",
    "compute_all",
    "stop_and_reverse",
    "stop_and_reverse_states",
    "trailing_stop_bands",
]
