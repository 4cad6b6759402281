"""
Logging setup using Loguru.

Modules log through ``from loguru import logger``; this module only decides
where records go and at which level.
"""
from __future__ import annotations

import sys

from loguru import logger

_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

_configured = False


# PUBLIC_INTERFACE
def setup_logger(level: str = "INFO") -> None:
    """
    Replace Loguru's default sink with a single stderr sink.

    Only the first call configures handlers; later calls are no-ops so that
    building several apps in one process (tests, reloader) does not duplicate
    output. Unknown level names fall back to INFO.
    """
    global _configured
    if _configured:
        return

    log_level = level.upper() if level else "INFO"
    if log_level not in _LEVELS:
        log_level = "INFO"

    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )
    _configured = True


__all__ = ["logger", "setup_logger"]
