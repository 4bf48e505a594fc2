"""Base contracts for article repositories."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol


class RemoteCallError(RuntimeError):
    """Raised when a call to the remote repository fails.

    Network, authentication and validation failures all collapse into this
    type; ``details`` carries whatever the transport reported.
    """

    kind = "remote_call"

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = dict(details or {})

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        try:
            detail_repr = json.dumps(self.details, ensure_ascii=False, default=str)
        except TypeError:
            detail_repr = str(self.details)
        return f"{base} | details: {detail_repr}"


class FileTooLargeError(RemoteCallError):
    """The remote rejected an upload because of its size cap."""

    kind = "file_too_large"


@dataclass(frozen=True, slots=True)
class ArticleRef:
    """Identifies the article created for one publish run."""

    article_id: int


@dataclass(frozen=True, slots=True)
class UploadedFileRef:
    """Represents a file accepted by the remote article."""

    name: str
    size: int
    mime_type: str
    source_path: str = ""


class ArticleUploadClient(Protocol):
    """Creates articles and appends files to them."""

    def create_article(self, title: str, description: str, kind: str) -> ArticleRef:
        """Create a new article and return its reference."""

    def upload_file(self, article_id: int, path: Path) -> UploadedFileRef:
        """Upload ``path`` into the article and describe the stored file."""
