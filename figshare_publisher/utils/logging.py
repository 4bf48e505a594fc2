"""Logging helpers.

One JSON object per record, or a plain line with ``--log-plain``. Output
goes to a caller-chosen stream so dispatch workers can keep stdout free for
the channel, and values such as ``Secret`` are rendered with ``str`` so they
stay masked.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "asctime",
    "taskName",
}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render log records as compact JSON.

    Values that JSON cannot encode are rendered with ``str``; secrets therefore
    show up in their masked form.
    """

    default_time_format = "%Y-%m-%dT%H:%M:%S"
    default_msec_format = "%s.%03dZ"

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.default_time_format),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }

        extras = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
        }
        if extras:
            data.update(extras)

        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure root logging with optional JSON output.

    ``stream`` defaults to stdout; dispatch workers pass stderr because their
    stdout carries the channel.
    """

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)

    if root.handlers:
        if structured is None:
            return
        formatter: logging.Formatter
        if structured:
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(_PLAIN_FORMAT)
        for handler in root.handlers:
            handler.setFormatter(formatter)
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    if structured:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
