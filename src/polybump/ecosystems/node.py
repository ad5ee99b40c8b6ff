"""Node.js packages (``package.json``)."""

from __future__ import annotations

import logging
from pathlib import Path

from polybump.ecosystems import jsonedit
from polybump.ecosystems.base import (
    Ecosystem,
    ManifestData,
    read_manifest_text,
    write_manifest_text,
)
from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.ranges import RangeParseError, parse_npm_range, satisfies
from polybump.versioning.semver import Version

logger = logging.getLogger(__name__)

DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

WORKSPACE_PROTOCOL = "workspace:"
# Specs that name a location rather than a version range.
_NON_RANGE_MARKERS = ("file:", "link:", "npm:", "git", "http:", "https:", "portal:", "/")


class NodeEcosystem(Ecosystem):
    key = "node"
    display_name = "Node.js"
    manifest_names = ("package.json",)
    default_publish_command = "npm publish"

    def _load(self, path: Path) -> tuple[str, dict, dict]:
        text = read_manifest_text(path)
        try:
            data, spans = jsonedit.load(text)
        except ValueError as e:
            raise ManifestParseError(path, str(e)) from e
        if not isinstance(data, dict):
            raise ManifestParseError(path, "top-level value is not an object")
        return text, data, spans

    def read(self, path: Path) -> ManifestData:
        _, data, _ = self._load(path)

        dependencies: dict[str, str] = {}
        for section in DEPENDENCY_SECTIONS:
            declared = data.get(section) or {}
            if not isinstance(declared, dict):
                raise ManifestParseError(path, f"'{section}' is not an object")
            for name, constraint in declared.items():
                dependencies.setdefault(name, constraint if isinstance(constraint, str) else "")

        workspaces = data.get("workspaces")
        if isinstance(workspaces, dict):
            workspaces = workspaces.get("packages", [])
        is_workspace = workspaces is not None or (path.parent / "pnpm-workspace.yaml").is_file()

        name = data.get("name")
        version = data.get("version")
        if not is_workspace and (not isinstance(name, str) or not name):
            raise ManifestParseError(path, "missing 'name'")
        return ManifestData(
            name=name if isinstance(name, str) else None,
            version=version if isinstance(version, str) else None,
            dependencies=dependencies,
            is_workspace=is_workspace,
            members=tuple(workspaces or ()),
        )

    def write_version(self, path: Path, new_version: str) -> None:
        try:
            text, _, spans = self._load(path)
        except ManifestParseError as e:
            raise ManifestWriteError(path, e.reason) from e
        if ("version",) not in spans:
            raise ManifestWriteError(path, "no 'version' field to update")
        write_manifest_text(path, jsonedit.replace_value(text, ("version",), new_version))

    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        try:
            text, data, _ = self._load(path)
        except ManifestParseError as e:
            raise ManifestWriteError(path, e.reason) from e
        sections = [
            section
            for section in DEPENDENCY_SECTIONS
            if isinstance(data.get(section), dict) and dependency in data[section]
        ]
        if not sections:
            raise ManifestWriteError(path, f"no dependency on '{dependency}'")
        for section in sections:
            text = jsonedit.replace_value(text, (section, dependency), constraint)
        write_manifest_text(path, text)

    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        constraint = constraint.strip()
        if constraint.startswith(WORKSPACE_PROTOCOL):
            constraint = constraint[len(WORKSPACE_PROTOCOL) :]
            if constraint in ("*", "^", "~", ""):
                return True
        if any(marker in constraint for marker in _NON_RANGE_MARKERS):
            return True
        try:
            return satisfies(parse_npm_range(constraint), version)
        except RangeParseError:
            logger.debug("Treating unparseable npm range %r as satisfied", constraint)
            return True

    def rewrite_constraint(self, constraint: str, version: Version) -> str:
        if constraint.startswith(WORKSPACE_PROTOCOL):
            rest = constraint[len(WORKSPACE_PROTOCOL) :]
            if rest in ("*", "^", "~", ""):
                return constraint
            return WORKSPACE_PROTOCOL + super().rewrite_constraint(rest, version)
        return super().rewrite_constraint(constraint, version)
