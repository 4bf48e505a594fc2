"""Command-line interface for publishing build artifacts to figshare."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Callable, Sequence

from ..dispatch import DispatchBoundary, create_channel
from ..dispatch import worker
from ..security import (
    ChainedCredentialStore,
    CredentialResolver,
    EnvCredentialStore,
    ExecutionContext,
    FileCredentialStore,
)
from ..settings import AppConfig, ConfigError, load_config
from ..utils.console import StreamConsole
from ..utils.logging import configure_logging, get_logger
from .publisher import FigsharePublishStep, PublishAbortedError

LOGGER = get_logger(__name__)

Handler = Callable[[argparse.Namespace, AppConfig], int]


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "worker", False):
        return worker.main(
            [],
            level=args.log_level or "INFO",
            structured=not args.log_plain,
        )

    handler: Handler | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help(sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        configure_logging(structured=not args.log_plain, stream=sys.stderr)
        LOGGER.error("Invalid configuration: %s", exc, extra={"event": "cli.config_error"})
        return 2

    configure_logging(
        level=args.log_level or config.logging.level,
        structured=config.logging.structured and not args.log_plain,
        stream=sys.stderr,
    )
    try:
        return handler(args, config)
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", exc, extra={"event": "cli.config_error"})
        return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="figshare-publish",
        description="Publish build artifacts to a new figshare article",
    )
    parser.add_argument("--config", help="Path to configuration file", default=None)
    parser.add_argument(
        "--log-plain",
        action="store_true",
        help="Use plain-text logs instead of JSON",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level (e.g. DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command")

    _add_publish_command(subparsers)
    _add_credentials_commands(subparsers)

    worker_parser = subparsers.add_parser(
        "worker",
        help="Serve one dispatched publish job over stdin/stdout",
    )
    worker_parser.set_defaults(worker=True)

    return parser


def _add_publish_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    publish_parser = subparsers.add_parser("publish", help="Upload matching files to a new article")
    publish_parser.add_argument("--credentials-id", required=True, help="Stored credential id")
    publish_parser.add_argument("--title", required=True, help="Article title")
    publish_parser.add_argument("--description", default="", help="Article description")
    publish_parser.add_argument(
        "--pattern",
        required=True,
        help="Ant-style include pattern, e.g. '**/*.png' (comma separated for several)",
    )
    publish_parser.add_argument(
        "--workspace",
        type=Path,
        default=None,
        help="Directory to search on the executing host; defaults to config or the current directory",
    )
    publish_parser.add_argument(
        "--scope",
        default=None,
        help="Credential scope of the calling job; global credentials are always visible",
    )
    publish_parser.set_defaults(handler=_handle_publish)


def _add_credentials_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    credentials_parser = subparsers.add_parser("credentials", help="Inspect stored credentials")
    credentials_subparsers = credentials_parser.add_subparsers(
        dest="credentials_command", required=True
    )

    list_parser = credentials_subparsers.add_parser("list", help="List selectable credentials")
    list_parser.add_argument("--scope", default=None, help="Credential scope of the calling job")
    list_parser.add_argument(
        "--format",
        choices=("json", "table"),
        default="table",
        help="Output format",
    )
    list_parser.set_defaults(handler=_handle_credentials_list)


def _handle_publish(args: argparse.Namespace, config: AppConfig) -> int:
    workspace = args.workspace or config.paths.workspace or Path.cwd()
    boundary = DispatchBoundary(create_channel(config.dispatch))
    step = FigsharePublishStep(
        credentials_id=args.credentials_id,
        article_title=args.title,
        article_description=args.description,
        include_pattern=args.pattern,
        resolver=_build_resolver(config),
        boundary=boundary,
        api=config.api,
    )

    LOGGER.info(
        "Publish started",
        extra={
            "event": "cli.command",
            "command": "publish",
            "workspace": str(workspace),
            "dispatch": config.dispatch.mode,
        },
    )
    try:
        step.perform(workspace, StreamConsole(sys.stdout), ExecutionContext.for_scope(args.scope))
    except PublishAbortedError as exc:
        LOGGER.error(
            "Publish aborted",
            extra={"event": "cli.command", "command": "publish", "reason": str(exc)},
        )
        print(str(exc), file=sys.stderr)
        return 1
    return 0


def _handle_credentials_list(args: argparse.Namespace, config: AppConfig) -> int:
    resolver = _build_resolver(config)
    records = resolver.list_visible(ExecutionContext.for_scope(args.scope))

    if args.format == "json":
        payload = [
            {
                "id": record.id,
                "name": record.display_name,
                "description": record.description,
                "scope": record.scope,
            }
            for record in records
        ]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    if not records:
        print("<no-credentials>")
        return 0
    width = max(len(record.id) for record in records)
    print("Id".ljust(width), "Name", sep="  ")
    for record in records:
        print(record.id.ljust(width), record.display_name, sep="  ")
    return 0


def _build_resolver(config: AppConfig) -> CredentialResolver:
    store = ChainedCredentialStore(
        [
            FileCredentialStore(config.paths.credentials_file),
            EnvCredentialStore(config.credential_env_ids),
        ]
    )
    return CredentialResolver(store)


__all__ = ["main"]
