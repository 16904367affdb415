"""Tagged, level-filtered log output written as ``tag: line: message``."""

from __future__ import annotations

import inspect
import sys
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    """Log verbosity levels; a message is written when its level is enabled."""

    NONE = 0
    CRIT = 1
    ERROR = 2
    WARN = 3
    INFO = 4
    DEBUG = 5


def _caller_line(depth: int) -> int:
    frame = inspect.currentframe()
    for _ in range(depth):
        if frame is None:
            return 0
        frame = frame.f_back
    return frame.f_lineno if frame is not None else 0


class TLogger:
    """Writes ``"<tag>: <line>: <message>"`` for messages within its level."""

    def __init__(
        self,
        tag: str,
        level: LogLevel = LogLevel.INFO,
        stream: TextIO | None = None,
    ) -> None:
        self.tag = tag
        self.level = LogLevel(level)
        self.stream = stream

    def _emit(self, level: LogLevel, fmt: str, args: tuple) -> str | None:
        if self.level < level:
            return None
        line = _caller_line(3)
        message = fmt % args if args else fmt
        text = f"{self.tag}: {line}: {message}"
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(text)
        return text

    def log(self, level: LogLevel, fmt: str, *args) -> str | None:
        """Write a %-formatted message at ``level``; return the text or None."""
        return self._emit(LogLevel(level), fmt, args)

    def debug(self, fmt: str, *args) -> str | None:
        return self._emit(LogLevel.DEBUG, fmt, args)

    def info(self, fmt: str, *args) -> str | None:
        return self._emit(LogLevel.INFO, fmt, args)

    def warning(self, fmt: str, *args) -> str | None:
        return self._emit(LogLevel.WARN, fmt, args)

    def error(self, fmt: str, *args) -> str | None:
        return self._emit(LogLevel.ERROR, fmt, args)

    def critical(self, fmt: str, *args) -> str | None:
        return self._emit(LogLevel.CRIT, fmt, args)