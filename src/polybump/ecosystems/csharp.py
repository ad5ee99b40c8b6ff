"""C# projects (``*.csproj``).

Manifests are read with ElementTree, but every write is a regex splice into
the original text so comments, attribute order and indentation survive.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path, PureWindowsPath

from polybump.ecosystems.base import (
    Ecosystem,
    ManifestData,
    read_manifest_text,
    write_manifest_text,
)
from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.ranges import RangeParseError, parse_nuget_range, satisfies
from polybump.versioning.semver import Version

logger = logging.getLogger(__name__)

_PROPERTY_GROUP = re.compile(r"<PropertyGroup\b[^>]*(?<!/)>(?P<body>.*?)</PropertyGroup>", re.S)
_VERSION_ELEMENT = re.compile(r"(<Version>)\s*([^<]*?)\s*(</Version>)")
_PACKAGE_REFERENCE = re.compile(r"<PackageReference\b[^>]*>")
_VERSION_ATTRIBUTE = re.compile(r"""(\bVersion\s*=\s*)(["'])([^"']*)\2""")


def _local(tag: str) -> str:
    # Legacy projects put every element in the MSBuild namespace.
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local(child.tag) == name]


def _include_matches(tag: str, dependency: str) -> bool:
    match = re.search(r"""\bInclude\s*=\s*(["'])([^"']*)\1""", tag)
    return match is not None and match.group(2).strip().lower() == dependency.lower()


def detect_indent(text: str) -> str:
    """Indent unit of the first indented line: four spaces, two spaces or a tab."""
    for line in text.splitlines():
        if line.startswith("    "):
            return "    "
        if line.startswith("  "):
            return "  "
        if line.startswith("\t"):
            return "\t"
    return "    "


def insert_version(text: str, new_version: str) -> str | None:
    """Add ``<Version>`` as the last element of the first ``<PropertyGroup>``.

    Returns ``None`` when the project has no property group to extend.
    """
    group = _PROPERTY_GROUP.search(text)
    if group is None:
        return None
    close = group.end("body")
    line_start = text.rfind("\n", 0, close) + 1
    closing_indent = text[line_start:close]
    if closing_indent.strip():
        # </PropertyGroup> shares its line with other content
        line_start, closing_indent = close, ""
    newline = "\r\n" if "\r\n" in text else "\n"
    element = f"{closing_indent}{detect_indent(text)}<Version>{new_version}</Version>{newline}"
    if line_start == close:
        element = newline + element
    return text[:line_start] + element + text[line_start:]


class CSharpEcosystem(Ecosystem):
    key = "csharp"
    display_name = "C#"
    default_publish_command = "dotnet pack -c Release && dotnet nuget push"
    default_constraint_prefix = ""

    def owns(self, path: Path) -> bool:
        return path.suffix == ".csproj"

    def _parse(self, path: Path) -> tuple[str, ET.Element]:
        text = read_manifest_text(path)
        try:
            return text, ET.fromstring(text)
        except ET.ParseError as e:
            raise ManifestParseError(path, str(e)) from e

    def read(self, path: Path) -> ManifestData:
        _, root = self._parse(path)
        if _local(root.tag) != "Project":
            raise ManifestParseError(path, "root element is not <Project>")

        version = None
        for group in _children(root, "PropertyGroup"):
            elements = _children(group, "Version")
            if elements and (elements[0].text or "").strip():
                version = (elements[0].text or "").strip()
                break

        dependencies: dict[str, str] = {}
        for item_group in _children(root, "ItemGroup"):
            for reference in _children(item_group, "ProjectReference"):
                include = reference.get("Include")
                if include:
                    dependencies.setdefault(PureWindowsPath(include).stem, "")
            for reference in _children(item_group, "PackageReference"):
                include = reference.get("Include")
                if not include:
                    continue
                constraint = reference.get("Version")
                if constraint is None:
                    nested = _children(reference, "Version")
                    constraint = (nested[0].text or "") if nested else ""
                dependencies.setdefault(include, constraint.strip())

        return ManifestData(
            name=path.stem,
            version=version,
            dependencies=dependencies,
            is_workspace=any(path.parent.glob("*.sln")),
        )

    def write_version(self, path: Path, new_version: str) -> None:
        text = read_manifest_text(path)
        for group in _PROPERTY_GROUP.finditer(text):
            match = _VERSION_ELEMENT.search(text, group.start("body"), group.end("body"))
            if match is not None:
                updated = text[: match.start(2)] + new_version + text[match.end(2) :]
                write_manifest_text(path, updated)
                return
        updated = insert_version(text, new_version)
        if updated is None:
            raise ManifestWriteError(path, "no <PropertyGroup> to hold a <Version>")
        logger.debug("Adding <Version> to %s", path)
        write_manifest_text(path, updated)

    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        text = read_manifest_text(path)
        pieces: list[str] = []
        position = 0
        for tag in _PACKAGE_REFERENCE.finditer(text):
            if not _include_matches(tag.group(0), dependency):
                continue
            attribute = _VERSION_ATTRIBUTE.search(text, tag.start(), tag.end())
            if attribute is None:
                continue
            pieces += [text[position : attribute.start(3)], constraint]
            position = attribute.end(3)
        if not pieces:
            raise ManifestWriteError(path, f"no versioned PackageReference to '{dependency}'")
        pieces.append(text[position:])
        write_manifest_text(path, "".join(pieces))

    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        try:
            return satisfies(parse_nuget_range(constraint), version)
        except RangeParseError:
            logger.debug("Treating unparseable NuGet range %r as satisfied", constraint)
            return True

    def rewrite_constraint(self, constraint: str, version: Version) -> str:
        text = constraint.strip()
        if text.startswith("[") and text.endswith("]") and "," not in text:
            return f"[{version}]"
        if text[:1] in ("[", "("):
            return f"[{version}, {version.major + 1}.0.0)"
        return str(version)

    def normalize_name(self, name: str) -> str:
        return name.lower()
