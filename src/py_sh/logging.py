"""Structured event log for one shell session.

The shell records what it decides as it goes: how a line parsed, which
pid was spawned for which command, which descriptor a redirection
moved, which background job was registered, collected, or dropped.
None of this touches the user-visible text on stdout/stderr.  Tests and
debugging sessions read it back through ``Logger.filter``, and setting
``PYSH_TRACE`` mirrors it live to stderr.

Entries carry the pid of the process that wrote them.  After a fork the
child keeps appending to its own copy of the buffer, so a child's
entries are only ever visible through the echo stream.
"""

import os
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    """How much an event matters; higher is louder."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One recorded event.

    Attributes:
        level: Severity.
        message: What happened.
        source: Component that recorded it (``parser``, ``engine``,
            ``jobs``, ``reaper``, ``shell``).
        pid: Process that recorded it.

    """

    level: LogLevel
    message: str
    source: str
    pid: int = field(default_factory=os.getpid)

    def __str__(self) -> str:
        """Render as ``[LEVEL] source(pid): message``."""
        return f"[{self.level.name}] {self.source}({self.pid}): {self.message}"


class Logger:
    """In-memory event buffer with an optional live echo."""

    def __init__(
        self,
        *,
        echo: TextIO | None = None,
        echo_level: LogLevel = LogLevel.DEBUG,
    ) -> None:
        """Create an empty log.

        Args:
            echo: If given, entries at or above *echo_level* are also
                written here as they are recorded.
            echo_level: Threshold for the echo.

        """
        self._entries: list[LogEntry] = []
        self._echo = echo
        self._echo_level = echo_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every entry, oldest first."""
        return list(self._entries)

    def log(self, level: LogLevel, message: str, *, source: str) -> LogEntry:
        """Record an event and echo it if it is loud enough.

        Returns:
            The new entry.

        """
        entry = LogEntry(level=level, message=message, source=source)
        self._entries.append(entry)
        if self._echo is not None and level >= self._echo_level:
            print(entry, file=self._echo, flush=True)  # noqa: T201
        return entry

    def debug(self, message: str, *, source: str) -> LogEntry:
        """Record at DEBUG."""
        return self.log(LogLevel.DEBUG, message, source=source)

    def info(self, message: str, *, source: str) -> LogEntry:
        """Record at INFO."""
        return self.log(LogLevel.INFO, message, source=source)

    def warning(self, message: str, *, source: str) -> LogEntry:
        """Record at WARNING."""
        return self.log(LogLevel.WARNING, message, source=source)

    def error(self, message: str, *, source: str) -> LogEntry:
        """Record at ERROR."""
        return self.log(LogLevel.ERROR, message, source=source)

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Select entries by minimum level and/or source.

        Omitted criteria match everything.
        """
        floor = LogLevel.DEBUG if min_level is None else min_level
        return [
            entry
            for entry in self._entries
            if entry.level >= floor and (source is None or entry.source == source)
        ]

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()
