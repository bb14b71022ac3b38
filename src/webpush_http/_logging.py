"""
Logging helpers for webpush_http.

The library never configures handlers itself; applications opt in with
logging.getLogger("webpush_http").setLevel(logging.DEBUG).
"""

import logging

__all__ = [
    "LOGGER_NAME",
    "get_logger",
]

LOGGER_NAME = "webpush_http"

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the webpush_http namespace.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger whose name starts with "webpush_http"
    """
    if name != LOGGER_NAME and not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
