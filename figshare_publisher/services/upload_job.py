"""Workflow for publishing discovered artifacts into a new article."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

from ..core import DiscoveryError, PatternMatcher
from ..platforms import ArticleUploadClient, RemoteCallError
from ..security import CredentialBundle
from ..utils.console import ConsoleSink
from ..utils.logging import get_logger
from .upload_models import JobFailure, JobResult, JobState, UploadSpec

LOGGER = get_logger(__name__)

ClientFactory = Callable[[CredentialBundle], ArticleUploadClient]


class RemoteUploadJob:
    """Discovers files, creates an article and uploads the files in order.

    The job runs on the host that owns ``spec.base_directory``. It never
    retries, never reorders and never rolls back: a failure stops the batch
    and the result keeps the uploads that already succeeded.
    """

    def __init__(
        self,
        spec: UploadSpec,
        credential: CredentialBundle,
        *,
        client_factory: ClientFactory,
        console: ConsoleSink,
        matcher: PatternMatcher | None = None,
    ) -> None:
        self._spec = spec
        self._credential = credential
        self._client_factory = client_factory
        self._console = console
        self._matcher = matcher or PatternMatcher()

    def run(self) -> JobResult:
        spec = self._spec
        result = JobResult(state=JobState.DISCOVERING)

        try:
            files = self._matcher.match(
                spec.base_directory,
                spec.include_pattern,
                spec.apply_default_excludes,
            )
        except DiscoveryError as exc:
            return self._fail(result, "discovery", exc)

        result.matched_file_count = len(files)
        if not files:
            self._console.println(f"No files found for pattern {spec.include_pattern}")
            result.state = JobState.NO_FILES
            return result

        LOGGER.debug("Initialising the figshare API", extra={"event": "job.client_init"})
        client = self._client_factory(self._credential)

        result.state = JobState.CREATING_ARTICLE
        LOGGER.debug(
            "Creating article %s",
            spec.article_title,
            extra={"event": "job.create_article", "description": spec.article_description},
        )
        try:
            article = client.create_article(
                spec.article_title, spec.article_description, spec.article_kind
            )
        except RemoteCallError as exc:
            return self._fail(result, exc.kind, exc)

        result.article = article
        self._console.println(f"Article {article.article_id} created!")

        result.state = JobState.UPLOADING
        for relative in files:
            try:
                uploaded = client.upload_file(article.article_id, spec.base_directory / relative)
            except RemoteCallError as exc:
                return self._fail(result, exc.kind, exc)
            uploaded = replace(uploaded, source_path=relative)
            result.uploaded.append(uploaded)
            self._console.println(
                f"File {uploaded.name} ({uploaded.size} bytes, {uploaded.mime_type}) "
                f"uploaded to article {article.article_id}"
            )

        result.state = JobState.COMPLETED
        LOGGER.info(
            "Published %d file(s) to article %d",
            len(result.uploaded),
            article.article_id,
            extra={"event": "job.completed", "article_id": article.article_id},
        )
        return result

    def _fail(self, result: JobResult, kind: str, exc: Exception) -> JobResult:
        LOGGER.warning(
            "Publish job failed while %s: %s",
            result.state,
            exc,
            extra={
                "event": "job.failed",
                "kind": kind,
                "uploaded": len(result.uploaded),
                "matched": result.matched_file_count,
            },
        )
        result.failure = JobFailure(kind=kind, message=str(exc))
        result.state = JobState.FAILED
        return result
