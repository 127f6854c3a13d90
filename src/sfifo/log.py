"""Logging setup for the command-line tool.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are attached here, once, by the CLI.
"""

from __future__ import annotations

import logging
import sys

_LOGGER_NAME = "sfifo"
_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_logging_initialized: bool = False


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Attach a stderr handler to the ``sfifo`` logger.

    Idempotent: later calls only adjust the level.
    """
    global _logging_initialized

    package_logger = logging.getLogger(_LOGGER_NAME)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if _logging_initialized:
        return package_logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    package_logger.addHandler(handler)
    package_logger.propagate = False

    _logging_initialized = True
    return package_logger


__all__ = ["configure_logging"]
