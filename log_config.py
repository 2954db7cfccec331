"""
Structured logging configuration.
"""

import logging
import sys

import structlog
from structlog.types import Processor


def setup_logging(level: str = "INFO", fmt: str = "console") -> structlog.BoundLogger:
    """
    Configure stdlib logging and structlog for the service.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG"
        fmt: "json" for machine-readable lines, anything else for console output

    Returns:
        The service logger
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("city_explorer")
