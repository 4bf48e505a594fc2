"""Application entry points."""

from .publisher import FigsharePublishStep, PublishAbortedError

__all__ = [
    "FigsharePublishStep",
    "PublishAbortedError",
]
