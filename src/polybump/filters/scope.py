"""Ecosystem and project based package selection."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from polybump.workspace.package import Package, PackageKind


def normalize_project(project: str) -> str:
    """Turn a user-supplied manifest path into a package id.

    Backslashes become slashes and a leading ``./`` is dropped:
    - "crates\\core\\Cargo.toml" -> "crates/core/Cargo.toml"
    - "./package.json" -> "package.json"
    """
    return project.strip().replace("\\", "/").removeprefix("./")


def match_scope(
    package: Package,
    languages: Iterable[str] = (),
    projects: Iterable[str] = (),
) -> bool:
    """Check if a package is selected by ecosystem keys and package ids.

    Both filters must pass; an empty filter selects everything.
    """
    languages = {language.lower() for language in languages}
    projects = {normalize_project(project) for project in projects}
    if languages and package.ecosystem not in languages:
        return False
    return not projects or package.id in projects


def scope_matcher(
    languages: Iterable[str] | None = None,
    projects: Iterable[str] | None = None,
) -> Callable[[Package], bool] | None:
    """Build a predicate for :func:`match_scope`, or ``None`` when nothing is filtered."""
    languages = list(languages or ())
    projects = list(projects or ())
    if not languages and not projects:
        return None
    return lambda package: match_scope(package, languages, projects)


def filter_by_scope(
    packages: list[Package],
    languages: Iterable[str] | None = None,
    projects: Iterable[str] | None = None,
) -> list[Package]:
    """Filter packages by ecosystem key and exact package id.

    Args:
        packages: List of packages to filter.
        languages: Ecosystem keys (``node``, ``rust``, ...).
        projects: Package ids, i.e. manifest paths relative to the root.

    Returns:
        Filtered list of packages.
    """
    matcher = scope_matcher(languages, projects)
    if matcher is None:
        return packages
    return [p for p in packages if matcher(p)]


def filter_by_kind(packages: list[Package], kind: PackageKind | None) -> list[Package]:
    """Keep only workspace roots or only plain packages."""
    if kind is None:
        return packages
    return [p for p in packages if p.kind is kind]
