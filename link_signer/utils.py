"""Logging setup and small helpers for the operator scripts."""

import logging
import os
import sys
from typing import Callable

import coloredlogs

logger = logging.getLogger(__name__)


def setup_console_logging(default_log_level="info", simplified_logging=True) -> logging.Logger:
    """Set up coloured log output.

    - Level is read from ``LOG_LEVEL`` environment variable
    - Tune down some noisy dependency library logging

    :return:
        Root logger
    """

    level = os.environ.get("LOG_LEVEL", default_log_level).upper()
    numeric_level = getattr(logging, level, None)
    assert isinstance(numeric_level, int), f"No level: {level}"

    if simplified_logging:
        fmt = "%(message)s"
    else:
        fmt = "%(asctime)s %(name)-44s %(message)s"
    date_fmt = "%H:%M:%S"

    coloredlogs.install(level=numeric_level, fmt=fmt, datefmt=date_fmt)

    # Mute noise
    logging.getLogger("web3.providers.HTTPProvider").setLevel(logging.WARNING)
    logging.getLogger("web3.RequestManager").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    return logging.getLogger()


def get_error_detail(e: Exception) -> str:
    """Human readable error, preferring what the remote side said."""
    response = getattr(e, "response", None)
    if response is not None and getattr(response, "text", None):
        return response.text
    body = getattr(e, "body", None)
    if body:
        return body
    return str(e) or e.__class__.__name__


def run_script(main: Callable[[], None]):
    """Run a script main function and exit 1 on any error.

    The error is logged with the remote response body when there is one.
    """
    try:
        main()
    except Exception as e:
        logger.error("Error: %s", get_error_detail(e), exc_info=logger.isEnabledFor(logging.DEBUG))
        sys.exit(1)
