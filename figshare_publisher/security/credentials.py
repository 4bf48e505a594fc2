"""Credential records, stores and the resolver used by publish steps."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from os import environ
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from ..settings.loader import ConfigError, read_toml
from ..utils.logging import get_logger
from .secret import Secret

LOGGER = get_logger(__name__)

GLOBAL_SCOPE = "global"


@dataclass(frozen=True, slots=True)
class CredentialBundle:
    """OAuth1 four-tuple used to sign figshare API calls."""

    client_key: str
    client_secret: Secret
    token_key: str
    token_secret: Secret


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """A stored credential together with its display metadata."""

    id: str
    bundle: CredentialBundle
    name: str = ""
    description: str = ""
    scope: str = GLOBAL_SCOPE

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Describes which credentials the calling job is allowed to see."""

    scopes: tuple[str, ...] = (GLOBAL_SCOPE,)
    can_view_credentials: bool = True

    @classmethod
    def for_scope(cls, scope: str | None) -> "ExecutionContext":
        if not scope or scope == GLOBAL_SCOPE:
            return cls()
        return cls(scopes=(scope, GLOBAL_SCOPE))


class CredentialStore(ABC):
    """Abstract credential lookup contract."""

    @abstractmethod
    def lookup(self, scopes: Sequence[str]) -> list[CredentialRecord]:
        """Return the records visible in ``scopes``, most specific scope first."""


class MappingCredentialStore(CredentialStore):
    """Wraps an in-memory sequence of records for testing."""

    def __init__(self, records: Iterable[CredentialRecord]) -> None:
        self._records = tuple(records)

    def lookup(self, scopes: Sequence[str]) -> list[CredentialRecord]:
        return _filter_by_scope(self._records, scopes)


class FileCredentialStore(CredentialStore):
    """Loads ``[[credentials]]`` tables from a TOML file.

    The file is read on every lookup so rotated or removed credentials take
    effect on the next run.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def lookup(self, scopes: Sequence[str]) -> list[CredentialRecord]:
        if not self._path.exists():
            return []
        data = read_toml(self._path)
        entries = data.get("credentials", [])
        if not isinstance(entries, list):
            raise ConfigError(
                f"{self._path}: 'credentials' must be an array of tables ([[credentials]])"
            )
        records: list[CredentialRecord] = []
        for item in entries:
            record = _record_from_mapping(item) if isinstance(item, Mapping) else None
            if record is None:
                LOGGER.warning(
                    "Ignoring credential entry without id or not a table in %s",
                    self._path,
                    extra={"event": "credentials.invalid_entry", "path": str(self._path)},
                )
                continue
            records.append(record)
        return _filter_by_scope(records, scopes)


class EnvCredentialStore(CredentialStore):
    """Reads global-scope credentials from environment variables.

    A credential ``main`` is described by ``FIGSHARE_CREDENTIALS_MAIN_CLIENT_KEY``,
    ``..._CLIENT_SECRET``, ``..._TOKEN_KEY`` and ``..._TOKEN_SECRET``.
    """

    _FIELDS = ("CLIENT_KEY", "CLIENT_SECRET", "TOKEN_KEY", "TOKEN_SECRET")

    def __init__(
        self,
        ids: Iterable[str],
        *,
        env: Mapping[str, str] | None = None,
        prefix: str = "FIGSHARE_CREDENTIALS_",
    ) -> None:
        self._ids = tuple(ids)
        self._env = env if env is not None else environ
        self._prefix = prefix

    def lookup(self, scopes: Sequence[str]) -> list[CredentialRecord]:
        if GLOBAL_SCOPE not in scopes:
            return []
        records = []
        for credential_id in self._ids:
            values = self._read(credential_id)
            if values is None:
                continue
            client_key, client_secret, token_key, token_secret = values
            bundle = CredentialBundle(
                client_key=client_key,
                client_secret=Secret(client_secret),
                token_key=token_key,
                token_secret=Secret(token_secret),
            )
            records.append(CredentialRecord(id=credential_id, bundle=bundle))
        return records

    def _read(self, credential_id: str) -> tuple[str, str, str, str] | None:
        stem = f"{self._prefix}{credential_id}".upper().replace(".", "_").replace("-", "_")
        try:
            values = tuple(self._env[f"{stem}_{field}"] for field in self._FIELDS)
        except KeyError:
            return None
        return values  # type: ignore[return-value]


class ChainedCredentialStore(CredentialStore):
    """Concatenates the records of several stores, in order."""

    def __init__(self, stores: Iterable[CredentialStore]) -> None:
        self._stores = tuple(stores)

    def lookup(self, scopes: Sequence[str]) -> list[CredentialRecord]:
        records: list[CredentialRecord] = []
        for store in self._stores:
            records.extend(store.lookup(scopes))
        return records


class CredentialResolver:
    """Resolves a credential id to a bundle within an execution context."""

    def __init__(self, store: CredentialStore) -> None:
        self._store = store

    def resolve(self, credential_id: str | None, context: ExecutionContext) -> CredentialBundle | None:
        """Return the first exact id match, or ``None`` when absent or not permitted."""
        if not credential_id or not context.can_view_credentials:
            return None
        for record in self._store.lookup(context.scopes):
            if record.id == credential_id:
                return record.bundle
        return None

    def list_visible(self, context: ExecutionContext) -> list[CredentialRecord]:
        """Records a job configured in ``context`` may choose from."""
        if not context.can_view_credentials:
            return []
        seen: set[str] = set()
        visible = []
        for record in self._store.lookup(context.scopes):
            if record.id in seen:
                continue
            seen.add(record.id)
            visible.append(record)
        return visible


def _record_from_mapping(item: Mapping[str, object]) -> CredentialRecord | None:
    credential_id = str(item.get("id") or "").strip()
    if not credential_id:
        return None
    bundle = CredentialBundle(
        client_key=str(item.get("client_key", "")),
        client_secret=Secret(str(item.get("client_secret", ""))),
        token_key=str(item.get("token_key", "")),
        token_secret=Secret(str(item.get("token_secret", ""))),
    )
    return CredentialRecord(
        id=credential_id,
        bundle=bundle,
        name=str(item.get("name", "")),
        description=str(item.get("description", "")),
        scope=str(item.get("scope") or GLOBAL_SCOPE),
    )


def _filter_by_scope(records: Sequence[CredentialRecord], scopes: Sequence[str]) -> list[CredentialRecord]:
    ordered: list[CredentialRecord] = []
    for scope in scopes:
        ordered.extend(record for record in records if record.scope == scope)
    return ordered


__all__ = [
    "GLOBAL_SCOPE",
    "ChainedCredentialStore",
    "CredentialBundle",
    "CredentialRecord",
    "CredentialResolver",
    "CredentialStore",
    "EnvCredentialStore",
    "ExecutionContext",
    "FileCredentialStore",
    "MappingCredentialStore",
]
