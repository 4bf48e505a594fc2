"""Ant-style include pattern matching over a local directory tree."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable, Iterator, Pattern, Sequence

from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_EXCLUDES: tuple[str, ...] = (
    # Miscellaneous typical temporary files
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    # CVS
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    # SCCS
    "**/SCCS",
    "**/SCCS/**",
    # Visual SourceSafe
    "**/vssver.scc",
    # Subversion
    "**/.svn",
    "**/.svn/**",
    # Mac
    "**/.DS_Store",
    # Git
    "**/.git",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    # Mercurial
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    # Bazaar
    "**/.bzr",
    "**/.bzr/**",
    "**/.bzrignore",
)


class DiscoveryError(RuntimeError):
    """Raised when the base directory cannot be scanned."""


def split_patterns(raw: str | None) -> list[str]:
    """Split a comma separated pattern list, dropping blanks."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def normalize_pattern(pattern: str) -> str:
    normalized = pattern.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    normalized = normalized.lstrip("/")
    if normalized.endswith("/"):
        normalized += "**"
    return normalized


def compile_pattern(pattern: str) -> Pattern[str]:
    """Translate an Ant-style pattern into a regular expression.

    ``*`` and ``?`` never cross a ``/``; a ``**`` segment matches zero or
    more whole directories.
    """
    parts = normalize_pattern(pattern).split("/")
    regex: list[str] = []
    for index, part in enumerate(parts):
        last = index == len(parts) - 1
        if part == "**":
            regex.append(".*" if last else "(?:[^/]*/)*")
            continue
        regex.append(_translate_segment(part))
        if not last:
            regex.append("/")
    return re.compile("".join(regex) + r"\Z")


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    for char in segment:
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(char))
    return "".join(out)


class PatternMatcher:
    """Resolves include patterns against a base directory.

    Results are relative POSIX-style paths in traversal order. Symlinked
    directories are not followed.
    """

    def __init__(self, default_excludes: Sequence[str] = DEFAULT_EXCLUDES) -> None:
        self._default_excludes = tuple(compile_pattern(item) for item in default_excludes)
        # Excludes of the form "<dir>/**" let the walk skip whole subtrees.
        self._pruned_dirs = tuple(
            compile_pattern(item[: -len("/**")])
            for item in default_excludes
            if normalize_pattern(item).endswith("/**")
        )

    def match(
        self,
        base_directory: str | os.PathLike[str],
        include_pattern: str | None,
        apply_default_excludes: bool = True,
    ) -> list[str]:
        base = Path(base_directory)
        self._check_base(base)

        includes = [compile_pattern(item) for item in split_patterns(include_pattern)]
        if not includes:
            LOGGER.debug(
                "Empty include pattern matches nothing",
                extra={"event": "discovery.empty_pattern", "base": str(base)},
            )
            return []

        excludes = self._default_excludes if apply_default_excludes else ()
        pruned = self._pruned_dirs if apply_default_excludes else ()

        matches: list[str] = []
        for relative in self._walk(base, "", pruned):
            if not _matches_any(includes, relative):
                continue
            if _matches_any(excludes, relative):
                continue
            matches.append(relative)

        LOGGER.debug(
            "Discovery finished",
            extra={
                "event": "discovery.done",
                "base": str(base),
                "pattern": include_pattern,
                "matched": len(matches),
            },
        )
        return matches

    def _check_base(self, base: Path) -> None:
        if not base.exists():
            raise DiscoveryError(f"Base directory does not exist: {base}")
        if not base.is_dir():
            raise DiscoveryError(f"Base path is not a directory: {base}")
        if not os.access(base, os.R_OK | os.X_OK):
            raise DiscoveryError(f"Base directory is not readable: {base}")

    def _walk(self, root: Path, prefix: str, pruned: Iterable[Pattern[str]]) -> Iterator[str]:
        directory = root / prefix if prefix else root
        try:
            with os.scandir(directory) as entries:
                listing = list(entries)
        except OSError as exc:
            if not prefix:
                raise DiscoveryError(f"Cannot read base directory {root}: {exc}") from exc
            LOGGER.warning(
                "Skipping unreadable directory %s: %s",
                directory,
                exc,
                extra={"event": "discovery.unreadable", "path": str(directory)},
            )
            return

        pruned = tuple(pruned)
        subdirectories: list[str] = []
        for entry in listing:
            relative = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir(follow_symlinks=False):
                if not _matches_any(pruned, relative):
                    subdirectories.append(relative)
            elif entry.is_file():
                yield relative

        for relative in subdirectories:
            yield from self._walk(root, relative, pruned)


def _matches_any(patterns: Iterable[Pattern[str]], path: str) -> bool:
    return any(pattern.match(path) for pattern in patterns)


__all__ = [
    "DEFAULT_EXCLUDES",
    "DiscoveryError",
    "PatternMatcher",
    "compile_pattern",
    "split_patterns",
]
