"""Publish step invoked once per build."""

from __future__ import annotations

from pathlib import Path

from ..dispatch import DispatchBoundary, DispatchError, DispatchRequest
from ..security import CredentialResolver, ExecutionContext
from ..services import JobResult, JobState, UploadSpec
from ..settings import ApiSettings
from ..utils.console import ConsoleSink
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)


class PublishAbortedError(RuntimeError):
    """Raised to abort the calling build when publishing failed hard."""


class FigsharePublishStep:
    """Sends build artifacts to figshare, such as plots and data files.

    A missing credential or workspace, or a pattern that matches nothing,
    skips the step without failing the build. Dispatch failures and failed
    jobs abort the build with :class:`PublishAbortedError`.
    """

    def __init__(
        self,
        *,
        credentials_id: str,
        article_title: str,
        article_description: str,
        include_pattern: str,
        resolver: CredentialResolver,
        boundary: DispatchBoundary,
        api: ApiSettings | None = None,
    ) -> None:
        self.credentials_id = credentials_id
        self.article_title = article_title
        self.article_description = article_description
        self.include_pattern = include_pattern
        self._resolver = resolver
        self._boundary = boundary
        self._api = api or ApiSettings()

    def perform(
        self,
        workspace: Path | None,
        console: ConsoleSink,
        context: ExecutionContext | None = None,
    ) -> bool:
        self.publish(workspace, console, context)
        return True

    def publish(
        self,
        workspace: Path | None,
        console: ConsoleSink,
        context: ExecutionContext | None = None,
    ) -> JobResult:
        console.println("Looking for files to upload to figshare...")

        credential = self._resolver.resolve(self.credentials_id, context or ExecutionContext())
        if credential is None:
            LOGGER.warning(
                "Could not locate credential with ID %s. figshare publishing is disabled for this step",
                self.credentials_id,
                extra={"event": "publish.no_credential", "credentials_id": self.credentials_id},
            )
            console.println("No credentials found. Skipping figshare post build step.")
            return JobResult.skipped(JobState.NO_CREDENTIAL)

        if workspace is None:
            console.println("Missing workspace. Skip creating an empty figshare article.")
            return JobResult.skipped(JobState.MISSING_WORKSPACE)

        request = DispatchRequest(
            spec=UploadSpec(
                base_directory=workspace,
                include_pattern=self.include_pattern,
                article_title=self.article_title,
                article_description=self.article_description,
            ),
            credential=credential,
            api=self._api,
        )

        try:
            result = self._boundary.submit(request, console)
        except DispatchError as exc:
            LOGGER.warning(
                "Error executing figshare: %s",
                exc,
                exc_info=True,
                extra={"event": "publish.dispatch_failed"},
            )
            raise PublishAbortedError(f"Error executing figshare: {exc}") from exc

        if result.matched_file_count == 0 and result.failure is None:
            console.println("No files found. Skip creating an empty figshare article.")
            return result

        if result.failure is not None:
            LOGGER.error(
                "figshare publish failed after %d of %d file(s)",
                len(result.uploaded),
                result.matched_file_count,
                extra={
                    "event": "publish.failed",
                    "kind": result.failure.kind,
                    "article_id": result.article.article_id if result.article else None,
                    "uploaded": [item.source_path for item in result.uploaded],
                },
            )
            raise PublishAbortedError(f"Error executing figshare: {result.failure.message}")

        LOGGER.info(
            "figshare publish finished",
            extra={
                "event": "publish.completed",
                "article_id": result.article.article_id if result.article else None,
                "files": len(result.uploaded),
            },
        )
        return result
