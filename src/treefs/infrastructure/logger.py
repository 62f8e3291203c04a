"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import os
import sys

import structlog
from structlog.typing import FilteringBoundLogger


def setup_logging() -> FilteringBoundLogger:
    """Build the treefs logger: console output on stderr.

    The pipeline is bound to this logger only, so importing treefs leaves
    the host application's structlog and logging configuration untouched.
    """
    log_level = os.environ.get("LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, log_level, logging.WARNING)

    return structlog.wrap_logger(
        structlog.PrintLogger(file=sys.stderr),
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
    )


logger: FilteringBoundLogger = setup_logging()
