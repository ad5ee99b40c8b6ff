"""Gitignore-style path filtering for discovered manifests."""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePosixPath


@dataclass(frozen=True)
class IgnorePattern:
    """One compiled ignore rule.

    Attributes:
        pattern: The glob as written, without ``!`` or trailing ``/``.
        negated: ``!`` rules re-include paths excluded by earlier rules.
        directory_only: Trailing ``/``: matches directories, never the manifest itself.
        regex: Anchored matcher for patterns containing ``/``; ``None`` for
            basename patterns, which match any path component via fnmatch.
    """

    pattern: str
    negated: bool
    directory_only: bool
    regex: re.Pattern[str] | None

    def matches(self, path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.regex is not None:
            return self.regex.fullmatch(path) is not None
        return fnmatch.fnmatchcase(PurePosixPath(path).name, self.pattern)


def _translate(glob: str) -> str:
    parts: list[str] = []
    i = 0
    while i < len(glob):
        char = glob[i]
        if glob.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif glob.startswith("/**", i) and i + 3 == len(glob):
            parts.append("(?:/.*)?")
            i += 3
        elif glob.startswith("**", i):
            parts.append(".*")
            i += 2
        elif char == "*":
            parts.append("[^/]*")
            i += 1
        elif char == "?":
            parts.append("[^/]")
            i += 1
        elif char == "[" and "]" in glob[i + 1 :]:
            end = glob.index("]", i + 1)
            body = glob[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            i = end + 1
        else:
            parts.append(re.escape(char))
            i += 1
    return "".join(parts)


@lru_cache(maxsize=256)
def compile_pattern(raw: str) -> IgnorePattern:
    """Compile a gitignore-style glob.

    Patterns without a ``/`` (other than a trailing one) match a file or
    directory name at any depth; anything else is anchored at the root.
    """
    negated = raw.startswith("!")
    pattern = raw[1:] if negated else raw
    directory_only = pattern.endswith("/")
    pattern = pattern.rstrip("/")
    if "/" in pattern:
        regex = re.compile(_translate(pattern.lstrip("/")))
    else:
        regex = None
    return IgnorePattern(pattern, negated, directory_only, regex)


def _candidates(relative_path: str) -> list[tuple[str, bool]]:
    """Every ancestor directory of the path, then the path itself."""
    parts = PurePosixPath(relative_path).parts
    candidates = [("/".join(parts[: i + 1]), True) for i in range(len(parts) - 1)]
    candidates.append((relative_path, False))
    return candidates


def should_ignore(relative_path: str, patterns: Iterable[str]) -> bool:
    """Check if a root-relative POSIX path is excluded.

    Rules are evaluated in order and the last matching one wins; a rule that
    matches a parent directory matches everything beneath it.

    Args:
        relative_path: Manifest path relative to the workspace root.
        patterns: Ignore globs.

    Returns:
        True if the path should be ignored.
    """
    ignored = False
    candidates = _candidates(relative_path)
    for raw in patterns:
        if not raw or raw.startswith("#"):
            continue
        rule = compile_pattern(raw)
        if any(rule.matches(path, is_dir) for path, is_dir in candidates):
            ignored = not rule.negated
    return ignored


def filter_by_ignore(paths: list[str], ignore: list[str] | None) -> list[str]:
    """Filter out root-relative paths matching ignore patterns.

    Args:
        paths: Root-relative POSIX paths.
        ignore: Ignore globs.

    Returns:
        Paths that are not ignored, in their original order.
    """
    if not ignore:
        return paths

    return [p for p in paths if not should_ignore(p, ignore)]
