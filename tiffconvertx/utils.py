"""Utility helpers for :mod:`tiffconvertx`."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Tuple

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return *name* logger with a single stream handler attached."""

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def configure_logging(level: str | int = "WARNING") -> logging.Logger:
    """Configure the package logger tree for command-line use."""

    logger = get_logger("tiffconvertx")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)
    return logger


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "500.0 B")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(size_bytes) < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


def coerce_dpi(value: Any) -> Optional[Tuple[float, float]]:
    """Normalise a resolution hint into a positive ``(x, y)`` float pair."""

    if value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            x = y = float(value)
        else:
            x, y = (float(part) for part in value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    if x <= 0 or y <= 0 or x != x or y != y:
        return None
    return round(x, 2), round(y, 2)


class Stopwatch:
    """Monotonic elapsed-time helper."""

    def __init__(self) -> None:
        self._started = time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self._started


__all__ = ["get_logger", "configure_logging", "format_file_size", "coerce_dpi", "Stopwatch"]
