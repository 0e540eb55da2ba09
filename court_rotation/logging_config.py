"""
Logging setup shared by the bot and the engine.

The bot calls setup_logging() once with the configured level. Test mode (or
DEBUG) logs one detailed line per record with its source location, which is
enough to follow every draw, refill and match submission. Otherwise each
record is a single short line.

Environment variables:
- LOG_LEVEL: DEBUG|INFO|WARNING|ERROR|CRITICAL (used when no level is passed)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
CONCISE_FORMAT = "%(levelname).1s %(name)s: %(message)s"

# Chatty at INFO; only shown in verbose mode
QUIET_LOGGERS = ("discord", "aiosqlite")

_handler: Optional[logging.Handler] = None


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    if not name:
        return default
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(level: Optional[str] = None, test_mode: bool = False) -> logging.Handler:
    """Install the stdout handler on the root logger and return it.

    Calling again replaces the handler installed by the previous call and
    leaves any other handler alone.
    """
    global _handler
    numeric_level = level_from_name(level or os.getenv("LOG_LEVEL"))
    verbose = test_mode or numeric_level <= logging.DEBUG

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(stream=sys.stdout)
    _handler.setFormatter(logging.Formatter(
        fmt=VERBOSE_FORMAT if verbose else CONCISE_FORMAT,
        datefmt="%H:%M:%S",
    ))
    root.setLevel(numeric_level)
    root.addHandler(_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO if verbose else logging.WARNING)
    return _handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
