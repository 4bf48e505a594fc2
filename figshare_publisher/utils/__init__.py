"""Utility exports."""

from .console import ConsoleSink, RecordingConsole, StreamConsole
from .logging import configure_logging, get_logger

__all__ = [
    "ConsoleSink",
    "RecordingConsole",
    "StreamConsole",
    "configure_logging",
    "get_logger",
]
