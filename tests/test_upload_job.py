"""Tests for the discover, create and upload workflow."""

from __future__ import annotations

from pathlib import Path

from figshare_publisher.core import PatternMatcher
from figshare_publisher.platforms import FileTooLargeError, RemoteCallError
from figshare_publisher.services import JobState, RemoteUploadJob, UploadSpec
from figshare_publisher.utils.console import RecordingConsole


def _spec(base: Path, pattern: str = "**/*.png") -> UploadSpec:
    return UploadSpec(
        base_directory=base,
        include_pattern=pattern,
        article_title="Nightly plots",
        article_description="Plots from build 42",
    )


def _run(spec: UploadSpec, credential, factory, console=None):
    console = console or RecordingConsole()
    job = RemoteUploadJob(spec, credential, client_factory=factory, console=console)
    return job.run(), console


def test_uploads_every_match_into_one_article(workspace: Path, credential, make_factory) -> None:
    factory = make_factory()

    result, console = _run(_spec(workspace), credential, factory)

    assert result.state == JobState.COMPLETED
    assert result.succeeded
    assert result.matched_file_count == 2
    assert result.article is not None
    assert len(result.uploaded) == 2
    assert sorted(item.source_path for item in result.uploaded) == ["out/a.png", "out/b.png"]

    create_calls = [call for call in factory.calls if call[0] == "create_article"]
    assert create_calls == [("create_article", "Nightly plots", "Plots from build 42", "dataset")]
    assert all(call[1] == result.article.article_id for call in factory.clients[0].upload_calls)

    article_id = result.article.article_id
    assert console.lines[0] == f"Article {article_id} created!"
    assert len(console.lines) == 3
    for item in result.uploaded:
        assert (
            f"File {item.name} ({item.size} bytes, image/png) uploaded to article {article_id}"
            in console.lines
        )


def test_upload_order_follows_discovery_order(workspace: Path, credential, make_factory) -> None:
    factory = make_factory()
    discovered = PatternMatcher().match(workspace, "**/*")

    result, _ = _run(_spec(workspace, "**/*"), credential, factory)

    assert [item.source_path for item in result.uploaded] == discovered
    assert [call[2] for call in factory.clients[0].upload_calls] == [
        Path(path).name for path in discovered
    ]


def test_no_match_creates_no_article(workspace: Path, credential, make_factory) -> None:
    factory = make_factory()

    result, console = _run(_spec(workspace, "**/*.pdf"), credential, factory)

    assert result.state == JobState.NO_FILES
    assert result.matched_file_count == 0
    assert result.article is None
    assert result.failure is None
    assert factory.clients == []
    assert console.lines == ["No files found for pattern **/*.pdf"]


def test_article_creation_failure_stops_before_uploads(workspace: Path, credential, make_factory) -> None:
    factory = make_factory(fail_create=RemoteCallError("401 unauthorized"))

    result, console = _run(_spec(workspace), credential, factory)

    assert result.state == JobState.FAILED
    assert result.failure.kind == "remote_call"
    assert "401 unauthorized" in result.failure.message
    assert result.article is None
    assert result.uploaded == []
    assert result.matched_file_count == 2
    assert factory.clients[0].upload_calls == []
    assert console.lines == []


def test_failed_upload_keeps_prefix_and_stops(tmp_path: Path, credential, make_factory) -> None:
    for name in ("1.png", "2.png", "3.png"):
        (tmp_path / name).write_bytes(b"png")
    factory = make_factory(fail_upload_at=2)
    discovered = PatternMatcher().match(tmp_path, "*.png")

    result, console = _run(_spec(tmp_path, "*.png"), credential, factory)

    assert result.state == JobState.FAILED
    assert result.article is not None
    assert [item.source_path for item in result.uploaded] == discovered[:1]
    assert len(factory.clients[0].upload_calls) == 2
    assert "connection reset" in result.failure.message
    assert console.lines[0] == f"Article {result.article.article_id} created!"
    assert len(console.lines) == 2


def test_oversized_file_surfaces_its_own_kind(workspace: Path, credential, make_factory) -> None:
    factory = make_factory(
        fail_upload_at=1,
        upload_error=FileTooLargeError("too large", details={"status": 413}),
    )

    result, _ = _run(_spec(workspace), credential, factory)

    assert result.failure.kind == "file_too_large"
    assert result.uploaded == []
    assert result.article is not None


def test_missing_base_directory_is_a_discovery_failure(tmp_path: Path, credential, make_factory) -> None:
    factory = make_factory()

    result, console = _run(_spec(tmp_path / "gone"), credential, factory)

    assert result.state == JobState.FAILED
    assert result.failure.kind == "discovery"
    assert factory.clients == []
    assert console.lines == []


def test_running_twice_creates_two_articles(workspace: Path, credential, make_factory) -> None:
    factory = make_factory()
    spec = _spec(workspace)

    first, _ = _run(spec, credential, factory)
    second, _ = _run(spec, credential, factory)

    assert first.article.article_id != second.article.article_id
    assert len(factory.clients) == 2


def test_job_receives_the_resolved_credential(workspace: Path, credential, make_factory) -> None:
    factory = make_factory()

    _run(_spec(workspace), credential, factory)

    assert factory.credentials == [credential]
