"""Channels that carry a publish job to the host owning the files."""

from __future__ import annotations

import os
import subprocess
import tempfile
from typing import Callable, Mapping, Protocol, Sequence

from ..services import ClientFactory, JobResult
from ..settings import DispatchSettings
from ..utils.console import ConsoleSink
from ..utils.logging import get_logger
from .messages import (
    EVENT_CONSOLE,
    EVENT_ERROR,
    EVENT_RESULT,
    DispatchRequest,
    MessageError,
    decode_event,
    encode_request,
    result_from_dict,
)
from .worker import handle_request

LOGGER = get_logger(__name__)

LineHandler = Callable[[str], None]


class DispatchError(RuntimeError):
    """Base class for failures while running a job through a channel."""


class DispatchTransportError(DispatchError):
    """The job could not be shipped to, or its answer read from, the worker."""


class RemoteExecutionError(DispatchError):
    """The worker reported an unexpected exception instead of a result."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(f"{kind}: {message}")
        self.kind = kind
        self.remote_message = message


class DispatchChannel(Protocol):
    """Request/response transport between dispatcher and worker."""

    def exchange(self, request_line: str, on_line: LineHandler) -> None:
        """Send ``request_line`` and feed every line the worker answers to ``on_line``."""


class LocalChannel:
    """Runs the worker in this process.

    The request and every event still go through the JSON codec.
    """

    def __init__(self, *, client_factory: ClientFactory | None = None) -> None:
        self._client_factory = client_factory

    def exchange(self, request_line: str, on_line: LineHandler) -> None:
        handle_request(request_line, on_line, client_factory=self._client_factory)


class SubprocessChannel:
    """Spawns a worker command and talks to it over stdin/stdout.

    The command may reach another machine, e.g.
    ``["ssh", "build-node", "figshare-publish", "worker"]``.
    """

    _STDERR_TAIL = 2000

    def __init__(
        self,
        command: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("SubprocessChannel requires a worker command")
        self._command = list(command)
        self._env = dict(env) if env is not None else None
        self._cwd = cwd

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def exchange(self, request_line: str, on_line: LineHandler) -> None:
        with tempfile.TemporaryFile(mode="w+", encoding="utf-8") as stderr:
            try:
                process = subprocess.Popen(
                    self._command,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=stderr,
                    text=True,
                    encoding="utf-8",
                    env=self._env,
                    cwd=self._cwd,
                )
            except OSError as exc:
                raise DispatchTransportError(
                    f"Cannot start worker {self._command[0]!r}: {exc}"
                ) from exc

            try:
                self._send(process, request_line)
                assert process.stdout is not None
                for raw in process.stdout:
                    line = raw.rstrip("\n")
                    if line:
                        on_line(line)
                returncode = process.wait()
            except BaseException:
                process.kill()
                process.wait()
                raise

            if returncode != 0:
                stderr.seek(0)
                tail = stderr.read()[-self._STDERR_TAIL :].strip()
                raise DispatchTransportError(
                    f"Worker exited with code {returncode}" + (f": {tail}" if tail else "")
                )

    def _send(self, process: subprocess.Popen[str], request_line: str) -> None:
        assert process.stdin is not None
        try:
            process.stdin.write(request_line + "\n")
            process.stdin.close()
        except OSError as exc:
            raise DispatchTransportError(f"Cannot send request to worker: {exc}") from exc


class DispatchBoundary:
    """Ships a publish request through a channel and returns its result."""

    def __init__(self, channel: DispatchChannel) -> None:
        self._channel = channel

    def submit(self, request: DispatchRequest, console: ConsoleSink) -> JobResult:
        terminal: list[JobResult] = []
        errors: list[RemoteExecutionError] = []

        def on_line(line: str) -> None:
            try:
                event = decode_event(line)
                kind = event["type"]
                if kind == EVENT_CONSOLE:
                    console.println(str(event.get("line", "")))
                elif kind == EVENT_RESULT:
                    terminal.append(result_from_dict(event.get("result") or {}))
                elif kind == EVENT_ERROR:
                    errors.append(
                        RemoteExecutionError(str(event.get("kind")), str(event.get("message")))
                    )
                else:
                    raise MessageError(f"Unexpected event type '{kind}'")
                if len(terminal) + len(errors) > 1:
                    raise MessageError("Worker sent more than one terminal event")
            except MessageError as exc:
                raise DispatchTransportError(str(exc)) from exc

        LOGGER.debug(
            "Dispatching publish job",
            extra={"event": "dispatch.submit", "channel": type(self._channel).__name__},
        )
        try:
            self._channel.exchange(encode_request(request), on_line)
        except DispatchError:
            raise
        except OSError as exc:
            raise DispatchTransportError(str(exc)) from exc

        if errors:
            raise errors[0]
        if not terminal:
            raise DispatchTransportError("Worker closed the channel without a result")
        return terminal[0]


def create_channel(
    settings: DispatchSettings,
    *,
    client_factory: ClientFactory | None = None,
) -> DispatchChannel:
    builders: dict[str, Callable[[], DispatchChannel]] = {
        "local": lambda: LocalChannel(client_factory=client_factory),
        "subprocess": lambda: SubprocessChannel(settings.resolved_command()),
    }
    try:
        builder = builders[settings.mode.lower()]
    except KeyError as exc:
        raise ValueError(f"Unsupported dispatch mode: {settings.mode}") from exc
    return builder()
