"""
Logging setup for leafsession.

All modules log through loguru via ``get_logger(__name__)`` so the sink and
level are configured in one place.
"""

import os
import sys

from loguru import logger as _logger

_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - <level>{message}</level>"
)

_configured = False


def setup_logging(level: str | None = None) -> None:
    """
    Replace the default loguru sink with a stderr sink at ``level``.

    Args:
        level: Log level name. Falls back to LOG_LEVEL, then INFO.
    """
    global _configured
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    _logger.remove()
    _logger.configure(extra={"name": "leafsession"})
    _logger.add(sys.stderr, level=level, format=_FORMAT)
    _configured = True


def get_logger(name: str):
    """Return a loguru logger bound to the given module name."""
    if not _configured:
        setup_logging()
    return _logger.bind(name=name)
