"""Rust crates (``Cargo.toml``)."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from polybump.ecosystems import tomledit
from polybump.ecosystems.base import Ecosystem, ManifestData
from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.ranges import RangeParseError, parse_cargo_requirement, satisfies
from polybump.versioning.semver import Version

logger = logging.getLogger(__name__)

DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


def _package_dependency_tables(data: Any) -> Iterator[Any]:
    """Top-level and per-target dependency tables."""
    for table in DEPENDENCY_TABLES:
        if table in data:
            yield data[table]
    for target in (data.get("target") or {}).values():
        for table in DEPENDENCY_TABLES:
            if table in target:
                yield target[table]


def _dependency_tables(data: Any) -> Iterator[Any]:
    """Package tables plus ``[workspace.dependencies]``."""
    yield from _package_dependency_tables(data)
    workspace = data.get("workspace") or {}
    if "dependencies" in workspace:
        yield workspace["dependencies"]


def _is_inherited(spec: Any) -> bool:
    return isinstance(spec, dict) and spec.get("workspace") is True


def _crate_name(key: str, spec: Any) -> str:
    if isinstance(spec, dict) and isinstance(spec.get("package"), str):
        return spec["package"]
    return key


def _requirement(spec: Any) -> str:
    if isinstance(spec, str):
        return spec
    if isinstance(spec, dict) and isinstance(spec.get("version"), str):
        return spec["version"]
    # path/git-only or `workspace = true`
    return ""


class RustEcosystem(Ecosystem):
    key = "rust"
    display_name = "Rust"
    manifest_names = ("Cargo.toml",)
    default_publish_command = "cargo publish"
    default_constraint_prefix = ""

    def normalize_name(self, name: str) -> str:
        return name.replace("_", "-")

    @staticmethod
    def _version_table(data: Any) -> Any | None:
        package = data.get("package")
        if package is not None:
            return package if "version" in package else None
        workspace_package = (data.get("workspace") or {}).get("package")
        if workspace_package is not None and "version" in workspace_package:
            return workspace_package
        return None

    def read(self, path: Path) -> ManifestData:
        data = tomledit.load_data(path)
        package = data.get("package") or {}
        workspace = data.get("workspace")

        dependencies: dict[str, str] = {}
        inherited: list[str] = []
        for table in _package_dependency_tables(data):
            if not isinstance(table, dict):
                raise ManifestParseError(path, "dependency table is not a table")
            for key, spec in table.items():
                crate = _crate_name(key, spec)
                if _is_inherited(spec):
                    if crate not in inherited:
                        inherited.append(crate)
                    dependencies.setdefault(crate, "")
                elif not dependencies.get(crate):
                    dependencies[crate] = _requirement(spec)

        shared = (workspace or {}).get("dependencies") or {}
        if not isinstance(shared, dict):
            raise ManifestParseError(path, "dependency table is not a table")
        for key, spec in shared.items():
            crate = _crate_name(key, spec)
            if crate in inherited:
                # resolved against this manifest's own [workspace.dependencies]
                inherited.remove(crate)
                dependencies[crate] = _requirement(spec)
            else:
                dependencies.setdefault(crate, _requirement(spec))

        name = package.get("name")
        if workspace is None and not isinstance(name, str):
            raise ManifestParseError(path, "missing 'package.name'")
        version_table = self._version_table(data)
        version = version_table.get("version") if version_table is not None else None
        if isinstance(version, dict):
            # version.workspace = true: inherited, not owned by this manifest
            version = None
        return ManifestData(
            name=name if isinstance(name, str) else None,
            version=version,
            dependencies=dependencies,
            is_workspace=workspace is not None,
            members=tuple((workspace or {}).get("members") or ()),
            inherited=tuple(inherited),
        )

    def write_version(self, path: Path, new_version: str) -> None:
        document = tomledit.load_document(path)
        table = self._version_table(document)
        if table is None:
            raise ManifestWriteError(path, "no version field to update")
        if not isinstance(table["version"], str):
            raise ManifestWriteError(path, "version is inherited from the workspace")
        table["version"] = tomledit.string_like(table["version"], new_version)
        tomledit.save_document(path, document)

    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        document = tomledit.load_document(path)
        wanted = self.normalize_name(dependency)
        found = False
        for table in _dependency_tables(document):
            for key in list(table.keys()):
                spec = table[key]
                if self.normalize_name(_crate_name(key, spec)) != wanted:
                    continue
                if isinstance(spec, str):
                    table[key] = tomledit.string_like(spec, constraint)
                    found = True
                elif isinstance(spec, dict) and "version" in spec:
                    spec["version"] = tomledit.string_like(spec["version"], constraint)
                    found = True
        if not found:
            raise ManifestWriteError(path, f"no versioned dependency on '{dependency}'")
        tomledit.save_document(path, document)

    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        try:
            return satisfies(parse_cargo_requirement(constraint), version)
        except RangeParseError:
            logger.debug("Treating unparseable Cargo requirement %r as satisfied", constraint)
            return True
