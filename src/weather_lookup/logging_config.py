"""Centralized logging configuration."""

import logging
from typing import Union

from weather_lookup.config import DEBUG, LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Server loggers keep their own handler so uvicorn's defaults are replaced
SERVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi")

# HTTP client loggers report every upstream request at INFO
UPSTREAM_LOGGERS = ("httpx", "httpcore")

APP_LOGGER = "weather_lookup"


def resolve_level(level: Union[str, int]) -> int:
    """Turn a level name such as 'info' or 'DEBUG' into its numeric value.

    Raises:
        ValueError: If the name is not a standard logging level
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _replace_handlers(logger: logging.Logger, formatter: logging.Formatter) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def configure_logging(level: Union[str, int] = LOG_LEVEL, debug: bool = DEBUG) -> None:
    """
    Configure one log format for the service, uvicorn and the HTTP clients.

    Safe to call more than once; handlers are replaced, not stacked.

    Args:
        level: Level for the service and server loggers
        debug: Let upstream request logs through at `level`; otherwise
            they are raised to WARNING
    """
    numeric_level = resolve_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    _replace_handlers(root_logger, formatter)

    for name in SERVER_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        _replace_handlers(logger, formatter)
        logger.propagate = False

    upstream_level = numeric_level if debug else max(numeric_level, logging.WARNING)
    for name in UPSTREAM_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(upstream_level)
        # Handled by the root handler
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.propagate = True

    logging.getLogger(APP_LOGGER).setLevel(numeric_level)
