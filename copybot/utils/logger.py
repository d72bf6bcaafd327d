"""
Logging configuration for the Polymarket Copy Bot.
"""
from __future__ import annotations

import logging
import sys


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    # getLevelName returns "Level X" for unknown names
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """
    Configure the root logger with a consistent format.

    Called once at process start. Returns the package logger so the entry point
    can hand it (or its children) to the tracker and the engine.
    """
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_fmt = "%Y-%m-%d %H:%M:%S"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt=date_fmt))

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    # Avoid duplicate handlers if called multiple times
    if not root.handlers:
        root.addHandler(handler)
    else:
        root.handlers = [handler]

    return logging.getLogger("copybot")
