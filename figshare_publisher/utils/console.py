"""Console sinks for the user-facing job output."""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class ConsoleSink(Protocol):
    """Receives the status lines a publish run narrates to the user."""

    def println(self, line: str) -> None:
        """Emit a single line of job output."""


class StreamConsole:
    """Writes console lines to a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def println(self, line: str) -> None:
        self._stream.write(f"{line}\n")
        self._stream.flush()


class RecordingConsole:
    """Keeps every line in memory."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def println(self, line: str) -> None:
        self.lines.append(line)

    def text(self) -> str:
        return "\n".join(self.lines)


__all__ = ["ConsoleSink", "RecordingConsole", "StreamConsole"]
