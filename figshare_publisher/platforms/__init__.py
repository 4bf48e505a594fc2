"""Platform integration package."""

from __future__ import annotations

from .base import ArticleRef, ArticleUploadClient, FileTooLargeError, RemoteCallError, UploadedFileRef

__all__ = [
    "ArticleRef",
    "ArticleUploadClient",
    "FileTooLargeError",
    "RemoteCallError",
    "UploadedFileRef",
]
