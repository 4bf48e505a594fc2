"""figshare platform adapters."""

from __future__ import annotations

from .api import FigshareApiClient

__all__ = [
    "FigshareApiClient",
]
