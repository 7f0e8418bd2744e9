"""Logging configuration for the ask CLI."""

import logging
import sys

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_handler: logging.Handler | None = None


def configure_logging(debug: bool = False) -> None:
    """Send package logs to stderr; DEBUG with --debug, WARNING otherwise.

    Safe to call more than once: the previous handler is replaced so it
    always writes to the current sys.stderr.
    """
    global _handler

    package_logger = logging.getLogger("ask_upgrade")
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    if _handler is not None:
        package_logger.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
