"""Tests for the figshare API client against a stubbed HTTP session."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import requests
from requests_oauthlib import OAuth1

from figshare_publisher.platforms import FileTooLargeError, RemoteCallError
from figshare_publisher.platforms.figshare import FigshareApiClient
from figshare_publisher.settings import ApiSettings


class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class StubSession:
    def __init__(self, *responses: StubResponse | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> StubResponse:
        files = kwargs.get("files")
        if files:
            # Capture the streamed body while the file is still open.
            field, (name, stream, mime) = next(iter(files.items()))
            kwargs["files"] = {field: (name, stream.read(), mime)}
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "plot.png"
    path.write_bytes(b"0123456789")
    return path


def _client(credential, session: StubSession, **kwargs) -> FigshareApiClient:
    return FigshareApiClient(credential, session=session, **kwargs)


def test_create_article_posts_title_description_and_kind(credential) -> None:
    session = StubSession(StubResponse(payload={"article_id": 321, "title": "T"}))
    client = _client(credential, session)

    article = client.create_article("T", "D", "dataset")

    assert article.article_id == 321
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://api.figshare.com/v1/my_data/articles"
    assert call["json"] == {"title": "T", "description": "D", "defined_type": "dataset"}
    assert isinstance(call["auth"], OAuth1)
    assert call["timeout"] == 60.0


def test_settings_drive_base_url_and_version(credential) -> None:
    session = StubSession(StubResponse(payload={"article_id": "7"}))
    client = FigshareApiClient.to(
        ApiSettings(base_url="https://api.example.org", version=2, timeout=5.0), credential
    )
    client._session = session

    assert client.create_article("T", "D", "dataset").article_id == 7
    assert session.calls[0]["url"] == "https://api.example.org/v2/my_data/articles"
    assert session.calls[0]["timeout"] == 5.0


def test_upload_file_sends_multipart_filedata(credential, artifact: Path) -> None:
    session = StubSession(
        StubResponse(payload={"name": "plot.png", "size": 10, "mime_type": "image/png"})
    )
    client = _client(credential, session)

    uploaded = client.upload_file(321, artifact)

    call = session.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "http://api.figshare.com/v1/my_data/articles/321/files"
    assert call["files"] == {"filedata": ("plot.png", b"0123456789", "image/png")}
    assert uploaded.name == "plot.png"
    assert uploaded.size == 10
    assert uploaded.mime_type == "image/png"


def test_upload_falls_back_to_local_metadata(credential, artifact: Path) -> None:
    session = StubSession(StubResponse(payload={"size": "10 KB"}))
    client = _client(credential, session)

    uploaded = client.upload_file(1, artifact)

    assert uploaded.name == "plot.png"
    assert uploaded.size == 10
    assert uploaded.mime_type == "image/png"


def test_upload_survives_file_removed_after_upload(credential, artifact: Path) -> None:
    class RemovingSession(StubSession):
        def request(self, method: str, url: str, **kwargs: Any) -> StubResponse:
            response = super().request(method, url, **kwargs)
            artifact.unlink()
            return response

    client = _client(credential, RemovingSession(StubResponse(payload={"name": "plot.png"})))

    uploaded = client.upload_file(1, artifact)

    assert uploaded.name == "plot.png"
    assert uploaded.size == 0


def test_request_failure_becomes_remote_call_error(credential) -> None:
    session = StubSession(requests.ConnectionError("dns failure"))
    client = _client(credential, session)

    with pytest.raises(RemoteCallError) as excinfo:
        client.create_article("T", "D", "dataset")

    assert excinfo.value.kind == "remote_call"
    assert "dns failure" in str(excinfo.value)


def test_rejected_request_carries_status(credential) -> None:
    session = StubSession(StubResponse(status_code=401, text="invalid signature"))
    client = _client(credential, session)

    with pytest.raises(RemoteCallError) as excinfo:
        client.create_article("T", "D", "dataset")

    assert excinfo.value.details["status"] == 401
    assert not isinstance(excinfo.value, FileTooLargeError)


def test_payload_too_large_is_reported_as_size_error(credential, artifact: Path) -> None:
    session = StubSession(StubResponse(status_code=413, text="Request Entity Too Large"))
    client = _client(credential, session)

    with pytest.raises(FileTooLargeError) as excinfo:
        client.upload_file(1, artifact)

    assert excinfo.value.kind == "file_too_large"


def test_error_body_mentioning_quota_is_a_size_error(credential, artifact: Path) -> None:
    session = StubSession(StubResponse(payload={"error": "Quota exceeded"}))
    client = _client(credential, session)

    with pytest.raises(FileTooLargeError):
        client.upload_file(1, artifact)


def test_missing_article_id_is_an_error(credential) -> None:
    session = StubSession(StubResponse(payload={"title": "T"}))
    client = _client(credential, session)

    with pytest.raises(RemoteCallError, match="article_id"):
        client.create_article("T", "D", "dataset")


def test_unreadable_file_is_a_remote_call_error(credential, tmp_path: Path) -> None:
    session = StubSession()
    client = _client(credential, session)

    with pytest.raises(RemoteCallError, match="Cannot read file"):
        client.upload_file(1, tmp_path / "missing.png")

    assert session.calls == []


def test_errors_never_include_secrets(credential) -> None:
    session = StubSession(StubResponse(status_code=500, text="boom"))
    client = _client(credential, session)

    with pytest.raises(RemoteCallError) as excinfo:
        client.create_article("T", "D", "dataset")

    assert "cs-plain" not in str(excinfo.value)
    assert "ts-plain" not in str(excinfo.value)
