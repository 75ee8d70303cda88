"""Logging helpers for nativeloader.

Every module obtains its logger through :func:`get_logger` so that all
records live under the ``nativeloader`` hierarchy. The library never
configures handlers on import; applications opt in via
:func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "nativeloader"

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())

_handler: Optional[logging.Handler] = None


def get_logger(name: str) -> logging.Logger:
    """Return a logger scoped under the nativeloader hierarchy.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        Logger instance.
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def configure_logging(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Attach a stderr handler to the package logger and set its level.

    Precedence: ``debug`` > ``verbose`` > ``quiet`` > default (WARNING).
    Calling this more than once replaces the previously installed handler.
    """
    global _handler

    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(level)
