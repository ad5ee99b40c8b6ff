"""Python packages (``pyproject.toml``)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from packaging.requirements import InvalidRequirement, Requirement
from packaging.specifiers import InvalidSpecifier, Specifier, SpecifierSet
from packaging.utils import canonicalize_name

from polybump.ecosystems import tomledit
from polybump.ecosystems.base import Ecosystem, ManifestData
from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.semver import PEP440, Version

logger = logging.getLogger(__name__)

_LOWER_BOUNDS = (">=", ">", "==", "===", "~=")
_UPPER_BOUNDS = ("<", "<=")


def _parse_requirement(text: Any) -> Requirement | None:
    if not isinstance(text, str):
        return None
    try:
        return Requirement(text)
    except InvalidRequirement:
        logger.debug("Skipping unparseable requirement %r", text)
        return None


def _format_requirement(original: Requirement, specifier: str) -> str:
    """Rebuild a PEP 508 string, keeping its name spelling, extras and marker."""
    text = original.name
    if original.extras:
        text += "[" + ",".join(sorted(original.extras)) + "]"
    if original.url:
        text += f" @ {original.url}"
        if original.marker:
            text += " "
    else:
        text += specifier
    if original.marker:
        text += f"; {original.marker}"
    return text


class PythonEcosystem(Ecosystem):
    key = "python"
    display_name = "Python"
    manifest_names = ("pyproject.toml",)
    scheme = PEP440
    default_publish_command = "uv publish"
    default_constraint_prefix = ">="

    def normalize_name(self, name: str) -> str:
        return canonicalize_name(name)

    @staticmethod
    def _requirement_arrays(data: Any) -> list[Any]:
        """Every array of PEP 508 strings: main, optional and dependency groups."""
        arrays: list[Any] = []
        project = data.get("project") or {}
        if "dependencies" in project:
            arrays.append(project["dependencies"])
        for group in (project.get("optional-dependencies") or {}).values():
            arrays.append(group)
        for group in (data.get("dependency-groups") or {}).values():
            arrays.append(group)
        return arrays

    @staticmethod
    def _version_table(data: Any) -> Any | None:
        """The table holding ``version``: ``[project]``, else ``[tool.poetry]``."""
        project = data.get("project")
        if project is not None and "version" in project:
            return project
        poetry = (data.get("tool") or {}).get("poetry")
        if poetry is not None and "version" in poetry:
            return poetry
        return None

    def read(self, path: Path) -> ManifestData:
        data = tomledit.load_data(path)
        project = data.get("project") or {}
        poetry = (data.get("tool") or {}).get("poetry") or {}
        workspace = ((data.get("tool") or {}).get("uv") or {}).get("workspace")

        dependencies: dict[str, str] = {}
        for array in self._requirement_arrays(data):
            if not isinstance(array, list):
                raise ManifestParseError(path, "dependency list is not an array")
            for item in array:
                requirement = _parse_requirement(item)
                if requirement is not None:
                    dependencies.setdefault(requirement.name, str(requirement.specifier))

        name = project.get("name") or poetry.get("name")
        version_table = self._version_table(data)
        version = version_table.get("version") if version_table is not None else None
        if workspace is None and not name:
            raise ManifestParseError(path, "missing 'project.name'")
        members = tuple((workspace or {}).get("members") or ())
        return ManifestData(
            name=name or None,
            version=version if isinstance(version, str) else None,
            dependencies=dependencies,
            is_workspace=workspace is not None,
            members=members,
        )

    def write_version(self, path: Path, new_version: str) -> None:
        document = tomledit.load_document(path)
        table = self._version_table(document)
        if table is None:
            dynamic = (document.get("project") or {}).get("dynamic") or []
            reason = "version is dynamic" if "version" in dynamic else "no version field to update"
            raise ManifestWriteError(path, reason)
        table["version"] = tomledit.string_like(table["version"], new_version)
        tomledit.save_document(path, document)

    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        document = tomledit.load_document(path)
        wanted = canonicalize_name(dependency)
        found = False
        for array in self._requirement_arrays(document):
            for index, item in enumerate(array):
                requirement = _parse_requirement(item)
                if requirement is None or canonicalize_name(requirement.name) != wanted:
                    continue
                requirement_text = _format_requirement(requirement, constraint)
                array[index] = tomledit.string_like(item, requirement_text)
                found = True
        if not found:
            raise ManifestWriteError(path, f"no dependency on '{dependency}'")
        tomledit.save_document(path, document)

    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        if not constraint.strip():
            return True
        try:
            return SpecifierSet(constraint).contains(str(version), prereleases=True)
        except InvalidSpecifier:
            logger.debug("Treating unparseable specifier %r as satisfied", constraint)
            return True

    def rewrite_constraint(self, constraint: str, version: Version) -> str:
        try:
            specifiers = list(SpecifierSet(constraint))
        except InvalidSpecifier:
            return f"{self.default_constraint_prefix}{version}"
        if not specifiers:
            return constraint
        if len(specifiers) == 1 and specifiers[0].operator in _LOWER_BOUNDS:
            return self._rebase(specifiers[0], version)

        rewritten: list[str] = []
        for specifier in specifiers:
            if specifier.contains(str(version), prereleases=True):
                text = str(specifier)
            elif specifier.operator in _LOWER_BOUNDS:
                text = f">={version}"
            elif specifier.operator in _UPPER_BOUNDS:
                text = f"<{version.major + 1}"
            else:
                continue
            if text not in rewritten:
                rewritten.append(text)
        return str(SpecifierSet(",".join(rewritten)))

    @staticmethod
    def _rebase(specifier: Specifier, version: Version) -> str:
        if specifier.operator == "~=":
            precision = max(2, len(specifier.version.split(".")))
            release = [str(part) for part in version.release][:precision]
            return "~=" + ".".join(release)
        return f"{specifier.operator}{version}"
