"""Coloured, timestamped console log output."""

from __future__ import annotations

import logging
import sys
import time
from datetime import timedelta
from enum import IntEnum
from typing import Callable, Optional

TRACE = 5
OFF = logging.CRITICAL + 1

_LEVEL_NAMES = {
    "off": OFF,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}


class ColorCode(IntEnum):
    RED = 31
    GREEN = 32
    YELLOW = 33
    CYAN = 36
    WHITE = 37
    BRIGHT_BLACK = 90


def _color_for(level: int) -> ColorCode:
    if level >= logging.ERROR:
        return ColorCode.RED
    if level >= logging.WARNING:
        return ColorCode.YELLOW
    if level >= logging.INFO:
        return ColorCode.GREEN
    if level >= logging.DEBUG:
        return ColorCode.CYAN
    return ColorCode.BRIGHT_BLACK


def _with_color(color: ColorCode, text: str) -> str:
    return f"\x1b[{int(color)}m{text}\x1b[m"


def format_line(level: int, target: str, line: int, message: str, now: timedelta) -> str:
    """Render one log line, coloured by level and stamped with ``now``."""
    color = _color_for(level)
    secs = now.days * 86400 + now.seconds
    body = f"[{secs:>3}.{now.microseconds:06} {target}:{line}] {_with_color(color, message)}\n"
    return _with_color(color, body)


def parse_level(level: str) -> int:
    """Map a level name (off, error, warn, info, debug, trace) to a logging level.

    Names are matched case-insensitively; anything else means off.
    """
    return _LEVEL_NAMES.get(level.lower(), OFF)


def set_max_level(logger: logging.Logger, level: str) -> None:
    """Let ``logger`` pass only records at or above the named level."""
    logger.setLevel(parse_level(level))


class ConsoleLogHandler(logging.Handler):
    """Writes each record as a coloured line with the time since the handler started."""

    def __init__(
        self,
        write: Optional[Callable[[str], object]] = None,
        clock: Optional[Callable[[], timedelta]] = None,
    ) -> None:
        super().__init__()
        self._write = write if write is not None else (lambda s: sys.stdout.write(s))
        if clock is None:
            started = time.monotonic()
            clock = lambda: timedelta(seconds=time.monotonic() - started)  # noqa: E731
        self._clock = clock

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = format_line(
                record.levelno, record.name, record.lineno or 0, record.getMessage(), self._clock()
            )
            self._write(text)
        except Exception:
            self.handleError(record)