"""Logging setup for the command-line tools.

Library modules only create module loggers with ``logging.getLogger(__name__)``;
handlers are attached once, by the entry point, to the ``wavetrace`` package
logger. Console output goes to stderr so that commands writing data to stdout
(``wavetrace generate``) stay machine readable.

Example:
    >>> import logging
    >>> from wavetrace.logging_config import setup_logging
    >>> logger = setup_logging(logging.DEBUG, "render.log")
"""

import logging
import sys

LOGGER_NAME = "wavetrace"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> logging.Logger:
    """Attach console (and optionally file) handlers to the package logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Logging level, e.g. ``logging.DEBUG``.
        log_file: Path of a log file to write as well, truncated on open.

    Returns:
        The ``wavetrace`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized at %s", logging.getLevelName(level))
    return logger
