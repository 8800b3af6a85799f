"""
Logging setup for the forecast dashboard.

All modules log through structlog so events carry key/value context
(symbol, cache key, error) instead of formatted strings.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(level: str = "INFO", format_json: bool = False, extra_processors: Optional[list] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...)
        format_json: Emit JSON lines instead of the coloured console format
        extra_processors: Additional structlog processors to run before rendering
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Return a structlog logger for the given module name."""
    return structlog.get_logger(name)
