"""Shared fixtures for the figshare publisher tests."""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import Callable

import pytest

from figshare_publisher.platforms import ArticleRef, RemoteCallError, UploadedFileRef
from figshare_publisher.security import CredentialBundle, Secret

_ARTICLE_IDS = itertools.count(1000)


class FakeArticleClient:
    """In-memory stand-in for the figshare API client."""

    def __init__(
        self,
        *,
        fail_create: Exception | None = None,
        fail_upload_at: int | None = None,
        upload_error: Exception | None = None,
    ) -> None:
        self.calls: list[tuple] = []
        self._fail_create = fail_create
        self._fail_upload_at = fail_upload_at
        self._upload_error = upload_error or RemoteCallError("connection reset")
        self._uploads = 0

    def create_article(self, title: str, description: str, kind: str) -> ArticleRef:
        self.calls.append(("create_article", title, description, kind))
        if self._fail_create is not None:
            raise self._fail_create
        return ArticleRef(article_id=next(_ARTICLE_IDS))

    def upload_file(self, article_id: int, path: Path) -> UploadedFileRef:
        self._uploads += 1
        self.calls.append(("upload_file", article_id, path.name))
        if self._fail_upload_at == self._uploads:
            raise self._upload_error
        return UploadedFileRef(
            name=path.name,
            size=path.stat().st_size,
            mime_type="image/png" if path.suffix == ".png" else "application/octet-stream",
        )

    @property
    def upload_calls(self) -> list[tuple]:
        return [call for call in self.calls if call[0] == "upload_file"]


class ClientRecorder:
    """Client factory that remembers every client it built."""

    def __init__(self, **client_kwargs) -> None:
        self._client_kwargs = client_kwargs
        self.clients: list[FakeArticleClient] = []
        self.credentials: list[CredentialBundle] = []

    def __call__(self, credential: CredentialBundle) -> FakeArticleClient:
        self.credentials.append(credential)
        client = FakeArticleClient(**self._client_kwargs)
        self.clients.append(client)
        return client

    @property
    def calls(self) -> list[tuple]:
        return [call for client in self.clients for call in client.calls]


@pytest.fixture
def credential() -> CredentialBundle:
    """Provides a complete OAuth1 credential bundle."""
    return CredentialBundle(
        client_key="ck",
        client_secret=Secret("cs-plain"),
        token_key="tk",
        token_secret=Secret("ts-plain"),
    )


@pytest.fixture
def make_factory() -> Callable[..., ClientRecorder]:
    """Builds client factories backed by :class:`FakeArticleClient`."""
    return ClientRecorder


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A build workspace holding two plots, a data file and VCS noise."""
    root = tmp_path / "ws"
    (root / "out").mkdir(parents=True)
    (root / "out" / "a.png").write_bytes(b"\x89PNG" + b"0" * 10)
    (root / "out" / "b.png").write_bytes(b"\x89PNG" + b"0" * 20)
    (root / "data.csv").write_text("x,y\n1,2\n", encoding="utf-8")
    (root / ".git").mkdir()
    (root / ".git" / "logo.png").write_bytes(b"\x89PNG")
    return root
