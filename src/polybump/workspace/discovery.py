"""Package discovery across ecosystems."""

from __future__ import annotations

import fnmatch
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePosixPath

from polybump.config import STATE_DIR, PolybumpConfig
from polybump.ecosystems import ECOSYSTEMS, Ecosystem, ecosystem_for
from polybump.errors import DiscoveryError, ManifestParseError
from polybump.filters.ignore import filter_by_ignore
from polybump.workspace.package import Package, PackageKind

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset(
    {
        ".git",
        "node_modules",
        "target",
        ".venv",
        "venv",
        "__pycache__",
        ".dart_tool",
        "build",
        "dist",
        STATE_DIR,
    }
)


@dataclass
class DiscoveryResult:
    """Packages found under a root, plus manifests that had to be skipped."""

    packages: list[Package] = field(default_factory=list)
    errors: list[DiscoveryError] = field(default_factory=list)


def find_manifests(root: Path) -> list[Path]:
    """Walk ``root`` in sorted order and return every known manifest file.

    Hidden directories and dependency/build output directories are not
    descended into.
    """
    manifests: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        for filename in sorted(filenames):
            if ecosystem_for(Path(filename)) is not None:
                manifests.append(Path(dirpath) / filename)
    return manifests


def _relative_id(path: Path, root: Path) -> str:
    return Path(os.path.relpath(path, root)).as_posix()


def _load_package(root: Path, manifest: Path) -> Package | DiscoveryError:
    package_id = _relative_id(manifest, root)
    ecosystem: Ecosystem | None = ecosystem_for(manifest)
    if ecosystem is None:
        return DiscoveryError(Path(package_id), "not a known manifest")
    try:
        data = ecosystem.read(manifest)
    except ManifestParseError as e:
        return DiscoveryError(Path(package_id), e.reason)
    return Package(
        id=package_id,
        ecosystem=ecosystem.key,
        kind=PackageKind.WORKSPACE if data.is_workspace else PackageKind.PACKAGE,
        name=data.name,
        version=data.version,
        path=manifest.parent,
        manifest_path=manifest,
        dependencies=dict(data.dependencies),
        members=data.members,
        inherited_dependencies=frozenset(data.inherited),
    )


def _resolve_members(root: Path, workspace: Package, packages: list[Package]) -> tuple[str, ...]:
    """Map a workspace's member globs onto discovered package ids.

    Without globs, every same-ecosystem package nested below the workspace
    counts as a member.
    """
    base = PurePosixPath(_relative_id(workspace.path, root))
    members: list[str] = []
    for package in packages:
        if package is workspace or package.ecosystem != workspace.ecosystem:
            continue
        package_dir = PurePosixPath(_relative_id(package.path, root))
        if base == PurePosixPath("."):
            relative = package_dir.as_posix()
        elif base in package_dir.parents:
            relative = package_dir.relative_to(base).as_posix()
        else:
            continue
        if not workspace.members or any(
            fnmatch.fnmatchcase(relative, glob.rstrip("/").removeprefix("./"))
            for glob in workspace.members
        ):
            members.append(package.id)
    return tuple(members)


def _inherit_constraints(package: Package, packages: list[Package]) -> Package:
    """Fill in constraints a member takes from its workspace root.

    Cargo members declaring ``dep = { workspace = true }`` are bound by the
    requirement in the root's ``[workspace.dependencies]``.
    """
    ecosystem = ECOSYSTEMS[package.ecosystem]
    roots = [p for p in packages if p.is_workspace and package.id in p.members]
    if not roots:
        logger.debug("%s inherits dependencies but has no workspace root", package.id)
        return package
    shared = {ecosystem.normalize_name(n): c for n, c in roots[0].dependencies.items()}
    dependencies = dict(package.dependencies)
    for name in package.inherited_dependencies:
        constraint = shared.get(ecosystem.normalize_name(name))
        if constraint:
            dependencies[name] = constraint
    return replace(package, dependencies=dependencies)


def discover_packages(root: Path, config: PolybumpConfig | None = None) -> DiscoveryResult:
    """Find and read every manifest below ``root``.

    Manifests are read concurrently (``config.discovery_concurrency``); the
    result keeps walk order. Unreadable manifests are reported in
    ``errors`` and left out of ``packages``.

    Args:
        root: Workspace root directory.
        config: Workspace configuration (ignore globs, concurrency).

    Returns:
        DiscoveryResult with packages in walk order.
    """
    config = config or PolybumpConfig()
    root = root.resolve()

    manifests = {_relative_id(m, root): m for m in find_manifests(root)}
    kept = filter_by_ignore(list(manifests), config.ignore)
    for skipped in manifests.keys() - set(kept):
        logger.debug("Ignoring %s", skipped)

    with ThreadPoolExecutor(max_workers=config.discovery_concurrency) as executor:
        loaded = list(executor.map(lambda rel: _load_package(root, manifests[rel]), kept))

    result = DiscoveryResult()
    for item in loaded:
        if isinstance(item, DiscoveryError):
            logger.warning("%s", item.message)
            result.errors.append(item)
        else:
            result.packages.append(item)

    result.packages = [
        replace(p, members=_resolve_members(root, p, result.packages)) if p.is_workspace else p
        for p in result.packages
    ]
    result.packages = [
        _inherit_constraints(p, result.packages) if p.inherited_dependencies else p
        for p in result.packages
    ]
    logger.debug("Discovered %d packages under %s", len(result.packages), root)
    return result
