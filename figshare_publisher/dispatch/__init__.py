"""Dispatch of publish jobs to the host that owns the workspace."""

from __future__ import annotations

from .channel import (
    DispatchBoundary,
    DispatchChannel,
    DispatchError,
    DispatchTransportError,
    LocalChannel,
    RemoteExecutionError,
    SubprocessChannel,
    create_channel,
)
from .messages import DispatchRequest, MessageError

__all__ = [
    "DispatchBoundary",
    "DispatchChannel",
    "DispatchError",
    "DispatchRequest",
    "DispatchTransportError",
    "LocalChannel",
    "MessageError",
    "RemoteExecutionError",
    "SubprocessChannel",
    "create_channel",
]
