"""structlog setup for ltgrid.

Trace output (LT_ENABLE_TRACE) is emitted at debug level; without tracing
only info and above reach stderr.
"""
from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(trace: bool = False) -> None:
    level = logging.DEBUG if trace else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
