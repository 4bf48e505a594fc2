"""figshare API v1 client."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Any, Mapping

import requests
from requests_oauthlib import OAuth1

from ...security.credentials import CredentialBundle
from ...settings.loader import DEFAULT_API_VERSION, DEFAULT_BASE_URL, ApiSettings
from ...utils.logging import get_logger
from ..base import ArticleRef, FileTooLargeError, RemoteCallError, UploadedFileRef

LOGGER = get_logger(__name__)

_SIZE_MARKERS = ("too large", "file size", "size limit", "quota")


class FigshareApiClient:
    """Minimal OAuth1-signed client for the figshare ``my_data`` endpoints."""

    _ARTICLES_PATH = "my_data/articles"
    _UPLOAD_METHOD = "PUT"
    _UPLOAD_FIELD = "filedata"

    def __init__(
        self,
        credential: CredentialBundle,
        *,
        base_url: str = DEFAULT_BASE_URL,
        version: int = DEFAULT_API_VERSION,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._version = version
        self._timeout = timeout
        self._session = session or requests.Session()
        self._auth = OAuth1(
            credential.client_key,
            client_secret=credential.client_secret.get_plain_text(),
            resource_owner_key=credential.token_key,
            resource_owner_secret=credential.token_secret.get_plain_text(),
        )

    @classmethod
    def to(cls, settings: ApiSettings, credential: CredentialBundle) -> "FigshareApiClient":
        return cls(
            credential,
            base_url=settings.base_url,
            version=settings.version,
            timeout=settings.timeout,
        )

    @property
    def api_root(self) -> str:
        return f"{self._base_url}v{self._version}/"

    def create_article(self, title: str, description: str, kind: str) -> ArticleRef:
        """Create an article; every call yields a new one."""
        payload = {"title": title, "description": description, "defined_type": kind}
        url = f"{self.api_root}{self._ARTICLES_PATH}"
        data = self._request("POST", url, context={"title": title}, json=payload)

        article_id = data.get("article_id")
        try:
            return ArticleRef(article_id=int(article_id))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise RemoteCallError("figshare response is missing article_id", details=data) from exc

    def upload_file(self, article_id: int, path: Path) -> UploadedFileRef:
        """Stream ``path`` into the article as a multipart upload."""
        url = f"{self.api_root}{self._ARTICLES_PATH}/{article_id}/files"
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        context = {"path": str(path), "article_id": article_id}

        try:
            stream = path.open("rb")
        except OSError as exc:
            raise RemoteCallError("Cannot read file for upload", details={**context, "reason": str(exc)}) from exc
        with stream:
            files = {self._UPLOAD_FIELD: (path.name, stream, mime_type)}
            data = self._request(self._UPLOAD_METHOD, url, context=context, files=files)

        return UploadedFileRef(
            name=str(data.get("name") or path.name),
            size=_parse_size(data.get("size"), fallback=path),
            mime_type=str(data.get("mime_type") or data.get("mimetype") or mime_type),
        )

    def _request(
        self,
        method: str,
        url: str,
        *,
        context: Mapping[str, Any],
        **kwargs: Any,
    ) -> dict[str, Any]:
        LOGGER.debug(
            "figshare request",
            extra={"event": "figshare.request", "method": method, "url": url},
        )
        try:
            response = self._session.request(
                method, url, auth=self._auth, timeout=self._timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise RemoteCallError(
                "Cannot reach figshare",
                details={**context, "url": url, "reason": str(exc)},
            ) from exc

        if not response.ok:
            body = response.text[:200]
            details = {**context, "status": response.status_code, "response": body}
            if response.status_code == 413 or _mentions_size(body):
                raise FileTooLargeError("figshare rejected the file: too large", details=details)
            raise RemoteCallError(f"figshare rejected {method} request", details=details)

        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteCallError(
                "Failed to parse figshare response",
                details={**context, "response": response.text[:200]},
            ) from exc

        if not isinstance(data, dict):
            raise RemoteCallError("Unexpected figshare response", details={**context, "response": data})
        if data.get("error"):
            error = str(data["error"])
            if _mentions_size(error):
                raise FileTooLargeError("figshare rejected the file: too large", details={**context, "error": error})
            raise RemoteCallError("figshare reported an error", details={**context, "error": error})
        return data


def _mentions_size(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in _SIZE_MARKERS)


def _parse_size(raw: Any, *, fallback: Path) -> int:
    # v1 sometimes answers with a human readable size such as "12 KB".
    if isinstance(raw, bool):
        raw = None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    try:
        return fallback.stat().st_size
    except OSError:
        # Local file removed after the upload; report the size as unknown.
        return 0
