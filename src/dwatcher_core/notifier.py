"""Pluggable notification protocol for dwatcher_core.

Decouples the engine from how user-facing messages are shown. The CLI uses
ConsoleNotifier; embedders can pass their own implementation.
"""

import logging
import sys
from typing import Protocol, TextIO

PREFIX = "[dwatcher]"

_CYAN = "\x1b[36m"
_YELLOW = "\x1b[33m"
_RED = "\x1b[31m"
_RESET = "\x1b[0m"


class Notifier(Protocol):
    """Protocol for notifications - host can provide custom implementation."""

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...


class NoOpNotifier:
    """Silent notifier - default when the engine is embedded."""

    def info(self, msg: str) -> None:
        pass

    def warning(self, msg: str) -> None:
        pass

    def error(self, msg: str) -> None:
        pass


class LoggingNotifier:
    """Routes notifications to stdlib logging."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("dwatcher")

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)


class ConsoleNotifier:
    """Prints prefixed messages; info to stdout, warnings and errors to stderr.

    The prefix is colored only when the target stream is a terminal.
    """

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None):
        self.out = out or sys.stdout
        self.err = err or sys.stderr

    def _emit(self, stream: TextIO, color: str, msg: str) -> None:
        isatty = getattr(stream, "isatty", None)
        prefix = f"{color}{PREFIX}{_RESET}" if isatty and isatty() else PREFIX
        print(f"{prefix} {msg}", file=stream, flush=True)

    def info(self, msg: str) -> None:
        self._emit(self.out, _CYAN, msg)

    def warning(self, msg: str) -> None:
        self._emit(self.err, _YELLOW, msg)

    def error(self, msg: str) -> None:
        self._emit(self.err, _RED, msg)
