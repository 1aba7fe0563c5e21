"""Logging setup for scripts and interactive sessions.

Library modules only create loggers under the "meshtracer" namespace and
never attach handlers. Applications that want output call setup_logging()
once at startup.

Example:
    >>> import logging
    >>> from meshtracer.logging_config import setup_logging
    >>> setup_logging(logging.DEBUG, "render.log")
"""

import logging
import sys
from pathlib import Path

# Time - logger - level - message
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: int = logging.INFO, log_file: str | Path | None = None) -> None:
    """Configure the "meshtracer" logger.

    Replaces any handlers from an earlier call, so calling this twice does
    not duplicate output.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO).
        log_file: Optional path of a file to write the log to, truncated on open.
    """
    logger = logging.getLogger("meshtracer")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info("Logging initialized.")
