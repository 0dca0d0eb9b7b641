# reqtools/core/logging_config.py
import logging
import sys

import structlog

from reqtools.core.settings import settings


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog on top of stdlib logging.
    Events are rendered as JSON lines on stdout.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None):
    return structlog.get_logger(name or "reqtools")


# Globale logger
logger = get_logger()
