"""Which changed packages still lack a changeset."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from polybump.changesets.models import Changeset
from polybump.config import STATE_DIR
from polybump.workspace.graph import DependencyGraph
from polybump.workspace.package import Package


def _package_dir(package: Package) -> PurePosixPath:
    return PurePosixPath(package.id).parent


def find_owning_package(path: str, packages: Iterable[Package]) -> Package | None:
    """Map a root-relative path to the package whose directory contains it.

    The deepest package directory wins. Paths under ``.polybump/`` belong
    to no package.

    Args:
        path: Root-relative POSIX path.
        packages: Candidate packages.

    Returns:
        The owning package, or None.
    """
    file_path = PurePosixPath(path)
    if file_path.parts and file_path.parts[0] == STATE_DIR:
        return None

    best: Package | None = None
    best_depth = -1
    for package in packages:
        directory = _package_dir(package)
        depth = 0 if directory == PurePosixPath(".") else len(directory.parts)
        if depth and directory not in file_path.parents:
            continue
        tie = depth == best_depth and best is not None and package.id < best.id
        if depth > best_depth or tie:
            best, best_depth = package, depth
    return best


def find_missing_changesets(
    changed_files: Iterable[str],
    graph: DependencyGraph,
    changesets: Iterable[Changeset],
) -> list[Package]:
    """List packages with changed files but no pending changeset naming them.

    Args:
        changed_files: Root-relative paths changed since the base branch.
        graph: Workspace dependency graph.
        changesets: Pending changesets.

    Returns:
        Packages needing a changeset, sorted by id.
    """
    packages = list(graph.packages.values())
    touched: dict[str, Package] = {}
    for path in changed_files:
        owner = find_owning_package(path, packages)
        if owner is not None:
            touched[owner.id] = owner

    covered: set[str] = set()
    for changeset in changesets:
        for reference in changeset.packages:
            covered.update(p.id for p in graph.find(reference))

    return [touched[i] for i in sorted(touched) if i not in covered]
