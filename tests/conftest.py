"""Shared test fixtures for bitsentinel."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import pytest
import structlog

from bitsentinel.market.types import CandleSeries
from tests.factories import make_series, make_wave_candles


@pytest.fixture
def wave_series() -> CandleSeries:
    """200 well-formed candles, long enough for every default indicator."""
    return make_series(make_wave_candles(200))


@pytest.fixture
def no_sleep() -> Iterator[AsyncMock]:
    """Replace the inter-batch sleep so pagination tests run instantly."""
    with patch(
        "bitsentinel.market.pagination.asyncio.sleep",
        new_callable=AsyncMock,
    ) as mock_sleep:
        yield mock_sleep


@pytest.fixture(autouse=True)
def _drop_log_handlers() -> Iterator[None]:
    """Remove handlers installed by setup_logging (CLI runs, logging tests).

    They hold the stream that was stderr at setup time, which CliRunner
    closes when the invocation ends.
    """
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
