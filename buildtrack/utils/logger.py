"""
Logging configuration.

One stdout handler lives on the `buildtrack` package logger; module loggers
created with logging.getLogger(__name__) propagate to it.
"""
import logging
import sys
from buildtrack.config import get_settings

settings = get_settings()

PACKAGE_LOGGER = "buildtrack"
LOG_FORMAT = f"%(asctime)s - {settings.APP_NAME} - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Get a logger, attaching the package handler on first use"""
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)

    package_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return logging.getLogger(name)
