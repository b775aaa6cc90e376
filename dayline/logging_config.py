"""
Tool: Logging
Purpose: structlog setup for Dayline, plus a per-day context

Every line logged while a day is being synthesized carries that day's
user_id and date, including lines from worker threads in a batch.
The context lives in structlog's contextvars, so it is scoped to the
thread (or task) that entered it.

Usage:
    from dayline.logging_config import day_context, get_logger, setup_logging

    setup_logging(level="DEBUG")
    logger = get_logger(__name__)

    with day_context("alice", date(2026, 3, 2)):
        logger.info("blocks_built", blocks=5)   # ... user_id=alice date=2026-03-02
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

import structlog

LEVEL_ENV = "DAYLINE_LOG_LEVEL"
FORMAT_ENV = "DAYLINE_LOG_FORMAT"


@contextmanager
def day_context(user_id: str | None, day: date) -> Iterator[None]:
    """Bind user_id and date to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(user_id=user_id, date=day.isoformat()):
        yield


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Route structlog through stdlib logging to stderr.

    Args:
        level: Level name; falls back to $DAYLINE_LOG_LEVEL, then INFO
        json_output: JSON lines instead of console output; falls back to
            $DAYLINE_LOG_FORMAT == "json"
    """
    level = level or os.environ.get(LEVEL_ENV, "INFO")
    if json_output is None:
        json_output = os.environ.get(FORMAT_ENV, "").lower() == "json"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdout is reserved for CLI JSON
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["day_context", "get_logger", "setup_logging"]
