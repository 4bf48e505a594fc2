"""Helpers for loading configuration."""

from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:  # pragma: no cover - Python 3.11+ includes tomllib
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older versions
    import tomli as tomllib  # type: ignore[no-redef]

DEFAULT_CONFIG_NAME = "figshare.toml"
CONFIG_ENV_VAR = "FIGSHARE_PUBLISHER_CONFIG"
DEFAULT_BASE_URL = "http://api.figshare.com/"
DEFAULT_API_VERSION = 1
DISPATCH_MODES = ("local", "subprocess")


class ConfigError(ValueError):
    """Raised when the configuration file is missing or malformed."""


@dataclass(frozen=True, slots=True)
class ApiSettings:
    base_url: str = DEFAULT_BASE_URL
    version: int = DEFAULT_API_VERSION
    timeout: float = 60.0

    def as_dict(self) -> dict[str, Any]:
        return {"base_url": self.base_url, "version": self.version, "timeout": self.timeout}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApiSettings":
        return cls(
            base_url=str(data.get("base_url") or DEFAULT_BASE_URL),
            version=int(data.get("version", DEFAULT_API_VERSION)),
            timeout=float(data.get("timeout", 60.0)),
        )


@dataclass(slots=True)
class PathSettings:
    credentials_file: Path
    workspace: Path | None = None


@dataclass(slots=True)
class DispatchSettings:
    """Where publish jobs execute.

    ``local`` runs the job in-process. ``subprocess`` spawns ``command``
    (for example ``ssh build-node figshare-publish worker``) and talks to it
    over stdin/stdout.
    """

    mode: str = "local"
    command: list[str] = field(default_factory=list)

    def resolved_command(self) -> list[str]:
        if self.command:
            return list(self.command)
        return [sys.executable, "-m", "figshare_publisher", "worker"]


@dataclass(slots=True)
class LoggingSettings:
    structured: bool = True
    level: str = "INFO"


@dataclass(slots=True)
class AppConfig:
    api: ApiSettings
    paths: PathSettings
    dispatch: DispatchSettings
    logging: LoggingSettings
    credential_env_ids: list[str] = field(default_factory=list)
    source: Path | None = None


def _to_path(value: str | None, *, base: Path, fallback: Path | None) -> Path | None:
    if not value:
        return fallback
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else base / candidate


def _config_path(explicit: str | os.PathLike[str] | None = None) -> tuple[Path, bool]:
    if explicit:
        return Path(explicit), True
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value), True
    return Path.cwd() / DEFAULT_CONFIG_NAME, False


def read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as fp:
            return tomllib.load(fp)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def _parse_command(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return shlex.split(raw)
    if isinstance(raw, list):
        return [str(item) for item in raw]
    raise ConfigError(f"dispatch.command must be a string or a list, got {type(raw).__name__}")


def load_config(config_path: str | os.PathLike[str] | None = None) -> AppConfig:
    path, required = _config_path(config_path)
    if path.exists():
        data = read_toml(path)
        source: Path | None = path
    elif required:
        raise ConfigError(f"Config file not found: {path}")
    else:
        data = {}
        source = None

    base = path.parent if source else Path.cwd()
    api_section = data.get("api", {})
    paths_section = data.get("paths", {})
    dispatch_section = data.get("dispatch", {})
    logging_section = data.get("logging", {})
    credentials_section = data.get("credentials", {})

    try:
        api = ApiSettings.from_dict(api_section)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid [api] section: {exc}") from exc

    mode = str(dispatch_section.get("mode", "local")).lower()
    if mode not in DISPATCH_MODES:
        raise ConfigError(
            f"Unsupported dispatch mode '{mode}', expected one of: {', '.join(DISPATCH_MODES)}"
        )

    credentials_file = _to_path(
        paths_section.get("credentials_file"),
        base=base,
        fallback=base / "credentials.toml",
    )
    workspace = _to_path(paths_section.get("workspace"), base=base, fallback=None)

    env_ids = credentials_section.get("env_ids", [])
    if isinstance(env_ids, str):
        env_ids = [item.strip() for item in env_ids.split(",") if item.strip()]

    return AppConfig(
        api=api,
        paths=PathSettings(credentials_file=credentials_file, workspace=workspace),  # type: ignore[arg-type]
        dispatch=DispatchSettings(
            mode=mode,
            command=_parse_command(dispatch_section.get("command")),
        ),
        logging=LoggingSettings(
            structured=bool(logging_section.get("structured", True)),
            level=str(logging_section.get("level", "INFO")).upper(),
        ),
        credential_env_ids=[str(item) for item in env_ids],
        source=source,
    )
