"""Structured logging setup with structlog.

Two output modes:
- "json": one JSON object per line (for services and log shipping)
- "console": colored key/value output (for interactive CLI use)

Every entry carries the run id of the current fetch/compute cycle and,
when bound, the symbol and interval being processed.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from uuid import uuid4

import structlog

_run_id: ContextVar[str] = ContextVar("run_id", default="")


def set_run_id(run_id: str | None = None) -> str:
    """Set (or generate) the run id for the current context and return it."""
    rid = run_id or uuid4().hex[:12]
    _run_id.set(rid)
    return rid


def get_run_id() -> str:
    """Get the run id for the current context."""
    return _run_id.get()


def bind_market_context(symbol: str, interval: str) -> None:
    """Attach symbol/interval to all log entries in the current context."""
    structlog.contextvars.bind_contextvars(symbol=symbol, interval=interval)


def clear_market_context() -> None:
    structlog.contextvars.unbind_contextvars("symbol", "interval")


def _add_run_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Inject run_id into every log entry."""
    rid = get_run_id()
    if rid:
        event_dict["run_id"] = rid
    return event_dict


def setup_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for machine-readable lines, "console" for humans.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_run_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stderr keeps stdout clean for CLI output (JSON bundles)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    # httpx logs every request at INFO; the fetch layer logs its own events
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structlog logger."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
