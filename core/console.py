"""Leveled console output shared by the discovery tools."""
from __future__ import annotations

from typing import Protocol, TextIO
import sys


class ConsoleLike(Protocol):
    """Minimal console interface required by the discovery components."""

    def error(self, message: str) -> None:
        ...

    def warning(self, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        ...

    def debug(self, message: str) -> None:
        ...


class Console:
    """Simple console output handler with configurable log level.

    Levels: none < error < warning < info < debug
    Default: 'warning'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warning": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(
        self,
        level: str = "warning",
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        if level not in self.LEVELS:
            allowed = ", ".join(self.LEVELS)
            raise ValueError(f"Unknown log level '{level}' (allowed: {allowed})")
        self.level_name = level
        self.level = self.LEVELS[level]
        self._stdout = stdout
        self._stderr = stderr

    def _emit(self, threshold: str, tag: str, message: str, *, error_stream: bool) -> None:
        if self.level < self.LEVELS[threshold]:
            return
        if error_stream:
            stream = self._stderr or sys.stderr
        else:
            stream = self._stdout or sys.stdout
        print(f"[{tag}] {message}", file=stream)

    def error(self, message: str) -> None:
        self._emit("error", "ERROR", message, error_stream=True)

    def warning(self, message: str) -> None:
        self._emit("warning", "WARNING", message, error_stream=True)

    def info(self, message: str) -> None:
        self._emit("info", "INFO", message, error_stream=False)

    def debug(self, message: str) -> None:
        self._emit("debug", "DEBUG", message, error_stream=False)


class RecordingConsole:
    """Console that keeps messages in memory, keyed by level."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def debug(self, message: str) -> None:
        self.messages.append(("debug", message))

    def of_level(self, level: str) -> list[str]:
        return [message for kind, message in self.messages if kind == level]


__all__ = ["Console", "ConsoleLike", "RecordingConsole"]
