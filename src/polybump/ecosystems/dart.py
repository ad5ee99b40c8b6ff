"""Dart/Flutter packages (``pubspec.yaml``).

Edits are spliced into the original text using the node marks from
``yaml.compose``, so comments, ordering and quoting survive untouched.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from polybump.ecosystems.base import (
    Ecosystem,
    ManifestData,
    read_manifest_text,
    write_manifest_text,
)
from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.ranges import RangeParseError, parse_dart_constraint, satisfies
from polybump.versioning.semver import Version

logger = logging.getLogger(__name__)

DEPENDENCY_SECTIONS = ("dependencies", "dev_dependencies", "dependency_overrides")

# Plain scalars may not start with an indicator or contain ": " / " #".
_NEEDS_QUOTES = re.compile(r"^[-?:,\[\]{}#&*!|>'\"%@`]|: | #|^\s|\s$")


def _mapping_get(node: yaml.Node | None, key: str) -> yaml.Node | None:
    if not isinstance(node, yaml.MappingNode):
        return None
    for key_node, value_node in node.value:
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
            return value_node
    return None


def _render_scalar(value: str, style: str | None) -> str:
    if style == '"' or (style is None and _NEEDS_QUOTES.search(value)):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
    if style == "'":
        return "'" + value.replace("'", "''") + "'"
    return value


def _splice(text: str, node: yaml.ScalarNode, value: str) -> str:
    start, end = node.start_mark.index, node.end_mark.index
    return text[:start] + _render_scalar(value, node.style) + text[end:]


class DartEcosystem(Ecosystem):
    key = "dart"
    display_name = "Dart"
    manifest_names = ("pubspec.yaml",)
    default_publish_command = "dart pub publish --force"

    def _compose(self, path: Path) -> tuple[str, yaml.Node | None]:
        text = read_manifest_text(path)
        try:
            return text, yaml.compose(text, Loader=yaml.SafeLoader)
        except yaml.YAMLError as e:
            raise ManifestParseError(path, str(e)) from e

    def read(self, path: Path) -> ManifestData:
        text = read_manifest_text(path)
        try:
            data: Any = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ManifestParseError(path, str(e)) from e
        if not isinstance(data, dict):
            raise ManifestParseError(path, "top-level value is not a mapping")

        dependencies: dict[str, str] = {}
        for section in DEPENDENCY_SECTIONS:
            declared = data.get(section) or {}
            if not isinstance(declared, dict):
                raise ManifestParseError(path, f"'{section}' is not a mapping")
            for name, spec in declared.items():
                if isinstance(spec, dict):
                    spec = spec.get("version")
                dependencies.setdefault(str(name), str(spec) if spec is not None else "")

        workspace = data.get("workspace")
        is_workspace = workspace is not None or (path.parent / "melos.yaml").is_file()
        name = data.get("name")
        version = data.get("version")
        if not is_workspace and not name:
            raise ManifestParseError(path, "missing 'name'")
        return ManifestData(
            name=str(name) if name else None,
            version=str(version) if version is not None else None,
            dependencies=dependencies,
            is_workspace=is_workspace,
            members=tuple(workspace) if isinstance(workspace, list) else (),
        )

    def write_version(self, path: Path, new_version: str) -> None:
        try:
            text, root = self._compose(path)
        except ManifestParseError as e:
            raise ManifestWriteError(path, e.reason) from e
        node = _mapping_get(root, "version")
        if not isinstance(node, yaml.ScalarNode):
            raise ManifestWriteError(path, "no 'version' field to update")
        write_manifest_text(path, _splice(text, node, new_version))

    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        try:
            text, root = self._compose(path)
        except ManifestParseError as e:
            raise ManifestWriteError(path, e.reason) from e

        targets: list[yaml.ScalarNode] = []
        for section in DEPENDENCY_SECTIONS:
            spec = _mapping_get(_mapping_get(root, section), dependency)
            if isinstance(spec, yaml.MappingNode):
                spec = _mapping_get(spec, "version")
            if isinstance(spec, yaml.ScalarNode) and spec.value:
                targets.append(spec)
        if not targets:
            raise ManifestWriteError(path, f"no versioned dependency on '{dependency}'")

        # Splice back to front so earlier offsets stay valid.
        for node in sorted(targets, key=lambda n: n.start_mark.index, reverse=True):
            text = _splice(text, node, constraint)
        write_manifest_text(path, text)

    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        try:
            return satisfies(parse_dart_constraint(constraint), version)
        except RangeParseError:
            logger.debug("Treating unparseable pub constraint %r as satisfied", constraint)
            return True
