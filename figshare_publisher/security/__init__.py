"""Security utilities package."""

from __future__ import annotations

from .credentials import (
    ChainedCredentialStore,
    CredentialBundle,
    CredentialRecord,
    CredentialResolver,
    CredentialStore,
    EnvCredentialStore,
    ExecutionContext,
    FileCredentialStore,
    MappingCredentialStore,
)
from .secret import Secret

__all__ = [
    "ChainedCredentialStore",
    "CredentialBundle",
    "CredentialRecord",
    "CredentialResolver",
    "CredentialStore",
    "EnvCredentialStore",
    "ExecutionContext",
    "FileCredentialStore",
    "MappingCredentialStore",
    "Secret",
]
