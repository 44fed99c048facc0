"""Structured logging for the key registry.

All log output goes through structlog; the event name is the first positional
argument and context is passed as keyword arguments.
"""
import logging
import sys

import structlog
from structlog.types import FilteringBoundLogger, Processor


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog processors and the output renderer.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Emit JSON lines when True, coloured console output otherwise.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "keyregistry") -> FilteringBoundLogger:
    return structlog.get_logger(name)


# Reconfigured from settings in app.main lifespan.
configure_logging()
