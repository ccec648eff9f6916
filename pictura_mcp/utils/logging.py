from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr; stdout carries the MCP stdio stream."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} - {message}")


__all__ = ["configure_logging"]
