"""JSON-lines messages exchanged between a dispatcher and a worker.

A run is one request line from the dispatcher followed by any number of
``console`` events and exactly one terminal ``result`` or ``error`` event
from the worker.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from ..platforms import ArticleRef, UploadedFileRef
from ..security import CredentialBundle, Secret
from ..services.upload_models import JobFailure, JobResult, JobState, UploadSpec
from ..settings import ApiSettings

PROTOCOL_VERSION = 1

EVENT_REQUEST = "request"
EVENT_CONSOLE = "console"
EVENT_RESULT = "result"
EVENT_ERROR = "error"


class MessageError(ValueError):
    """Raised when a line on the channel is not a valid message."""


@dataclass(frozen=True, slots=True)
class DispatchRequest:
    """Everything a worker needs to run one publish job."""

    spec: UploadSpec
    credential: CredentialBundle
    api: ApiSettings


def encode_request(request: DispatchRequest) -> str:
    spec = request.spec
    credential = request.credential
    return _dump(
        {
            "type": EVENT_REQUEST,
            "version": PROTOCOL_VERSION,
            "spec": {
                "base_directory": str(spec.base_directory),
                "include_pattern": spec.include_pattern,
                "apply_default_excludes": spec.apply_default_excludes,
                "article_title": spec.article_title,
                "article_description": spec.article_description,
                "article_kind": spec.article_kind,
            },
            # Secrets travel in plaintext on the channel only.
            "credential": {
                "client_key": credential.client_key,
                "client_secret": credential.client_secret.get_plain_text(),
                "token_key": credential.token_key,
                "token_secret": credential.token_secret.get_plain_text(),
            },
            "api": request.api.as_dict(),
        }
    )


def decode_request(line: str) -> DispatchRequest:
    data = decode_event(line)
    if data["type"] != EVENT_REQUEST:
        raise MessageError(f"Expected a request, got '{data['type']}'")
    version = data.get("version")
    if version != PROTOCOL_VERSION:
        raise MessageError(f"Unsupported protocol version: {version!r}")
    try:
        spec_data = data["spec"]
        credential_data = data["credential"]
        spec = UploadSpec(
            base_directory=Path(spec_data["base_directory"]),
            include_pattern=str(spec_data["include_pattern"] or ""),
            article_title=str(spec_data["article_title"]),
            article_description=str(spec_data["article_description"]),
            apply_default_excludes=bool(spec_data.get("apply_default_excludes", True)),
            article_kind=str(spec_data.get("article_kind") or "dataset"),
        )
        credential = CredentialBundle(
            client_key=str(credential_data["client_key"]),
            client_secret=Secret(str(credential_data["client_secret"])),
            token_key=str(credential_data["token_key"]),
            token_secret=Secret(str(credential_data["token_secret"])),
        )
        api = ApiSettings.from_dict(data.get("api") or {})
    except (KeyError, TypeError, ValueError) as exc:
        raise MessageError(f"Malformed request: {exc}") from exc
    return DispatchRequest(spec=spec, credential=credential, api=api)


def encode_console(line: str) -> str:
    return _dump({"type": EVENT_CONSOLE, "line": line})


def encode_result(result: JobResult) -> str:
    return _dump({"type": EVENT_RESULT, "result": result_to_dict(result)})


def encode_error(kind: str, message: str) -> str:
    return _dump({"type": EVENT_ERROR, "kind": kind, "message": message})


def decode_event(line: str) -> dict[str, Any]:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise MessageError(f"Invalid message: {line[:200]!r}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise MessageError(f"Message without a type: {line[:200]!r}")
    return data


def result_to_dict(result: JobResult) -> dict[str, Any]:
    return {
        "matched_file_count": result.matched_file_count,
        "article": {"article_id": result.article.article_id} if result.article else None,
        "uploaded": [
            {
                "name": item.name,
                "size": item.size,
                "mime_type": item.mime_type,
                "source_path": item.source_path,
            }
            for item in result.uploaded
        ],
        "failure": (
            {"kind": result.failure.kind, "message": result.failure.message}
            if result.failure
            else None
        ),
        "state": result.state,
    }


def result_from_dict(data: Mapping[str, Any]) -> JobResult:
    try:
        article_data = data.get("article")
        failure_data = data.get("failure")
        return JobResult(
            matched_file_count=int(data.get("matched_file_count", 0)),
            article=ArticleRef(article_id=int(article_data["article_id"])) if article_data else None,
            uploaded=[
                UploadedFileRef(
                    name=str(item["name"]),
                    size=int(item["size"]),
                    mime_type=str(item["mime_type"]),
                    source_path=str(item.get("source_path", "")),
                )
                for item in data.get("uploaded", [])
            ],
            failure=(
                JobFailure(kind=str(failure_data["kind"]), message=str(failure_data["message"]))
                if failure_data
                else None
            ),
            state=str(data.get("state", JobState.COMPLETED)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MessageError(f"Malformed result: {exc}") from exc


def _dump(data: Mapping[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
