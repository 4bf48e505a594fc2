"""Data models for the artifact publishing workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ..platforms import ArticleRef, UploadedFileRef

DEFAULT_ARTICLE_KIND = "dataset"


class JobState:
    """Lifecycle states of a publish run."""

    IDLE = "idle"
    RESOLVING = "resolving"
    NO_CREDENTIAL = "no_credential"
    MISSING_WORKSPACE = "missing_workspace"
    DISCOVERING = "discovering"
    NO_FILES = "no_files"
    CREATING_ARTICLE = "creating_article"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"

    TERMINAL = frozenset({NO_CREDENTIAL, MISSING_WORKSPACE, NO_FILES, COMPLETED, FAILED})


@dataclass(frozen=True, slots=True)
class UploadSpec:
    """What to publish, fixed for the duration of one job."""

    base_directory: Path
    include_pattern: str
    article_title: str
    article_description: str
    apply_default_excludes: bool = True
    article_kind: str = DEFAULT_ARTICLE_KIND


@dataclass(frozen=True, slots=True)
class JobFailure:
    """Tagged error carried in a result instead of an exception."""

    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


@dataclass(slots=True)
class JobResult:
    """Outcome of a publish run.

    ``uploaded`` is always the prefix of the matched files that made it to
    the remote article, in discovery order.
    """

    matched_file_count: int = 0
    article: ArticleRef | None = None
    uploaded: list[UploadedFileRef] = field(default_factory=list)
    failure: JobFailure | None = None
    state: str = JobState.IDLE

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    @classmethod
    def skipped(cls, state: str) -> "JobResult":
        return cls(state=state)
