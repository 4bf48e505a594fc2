"""Worker side of the dispatch channel.

Reads one request line from stdin, runs the publish job on this host and
writes console events plus one terminal event to stdout. Logging goes to
stderr.
"""

from __future__ import annotations

import sys
from typing import Callable, Sequence, TextIO

from ..platforms.figshare import FigshareApiClient
from ..security import CredentialBundle
from ..services import ClientFactory, RemoteUploadJob
from ..settings import ApiSettings
from ..utils.logging import configure_logging, get_logger
from .messages import (
    MessageError,
    decode_request,
    encode_console,
    encode_error,
    encode_result,
)

LOGGER = get_logger(__name__)

Emit = Callable[[str], None]


class ChannelConsole:
    """Console sink that forwards lines to the dispatcher as events."""

    def __init__(self, emit: Emit) -> None:
        self._emit = emit

    def println(self, line: str) -> None:
        self._emit(encode_console(line))


def handle_request(
    request_line: str,
    emit: Emit,
    *,
    client_factory: ClientFactory | None = None,
) -> None:
    """Run the job described by ``request_line``; always emits a terminal event."""
    try:
        request = decode_request(request_line)
    except MessageError as exc:
        LOGGER.error("Rejected dispatch request: %s", exc, extra={"event": "worker.bad_request"})
        emit(encode_error("protocol", str(exc)))
        return

    factory = client_factory or _figshare_factory(request.api)

    LOGGER.info(
        "Running publish job",
        extra={
            "event": "worker.job",
            "base_directory": str(request.spec.base_directory),
            "pattern": request.spec.include_pattern,
        },
    )
    job = RemoteUploadJob(
        request.spec,
        request.credential,
        client_factory=factory,
        console=ChannelConsole(emit),
    )
    try:
        result = job.run()
    except Exception as exc:
        LOGGER.exception("Publish job crashed", extra={"event": "worker.crash"})
        emit(encode_error(type(exc).__name__, str(exc)))
        return
    emit(encode_result(result))


def _figshare_factory(api: ApiSettings) -> ClientFactory:
    def build(credential: CredentialBundle) -> FigshareApiClient:
        return FigshareApiClient.to(api, credential)

    return build


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    level: int | str = "INFO",
    structured: bool = True,
) -> int:
    _ = argv
    configure_logging(level=level, structured=structured, stream=sys.stderr)
    source = stdin or sys.stdin
    sink = stdout or sys.stdout

    line = source.readline()
    if not line.strip():
        LOGGER.error("No dispatch request received", extra={"event": "worker.empty"})
        return 2

    def emit(event_line: str) -> None:
        sink.write(event_line + "\n")
        sink.flush()

    handle_request(line, emit)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
