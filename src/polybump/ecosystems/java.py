"""Java/Kotlin Gradle builds (``build.gradle.kts``, ``build.gradle``).

Build scripts are programs, so only the common literal forms are read and
rewritten::

    version = "1.0.0"
    version = project.findProperty("releaseVersion") ?: "1.0.0"
    version '1.0.0'

A build without a literal version falls back to ``version=`` in the
``gradle.properties`` beside it. Internal dependencies are
``project(":path")`` references.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from polybump.ecosystems.base import (
    Ecosystem,
    ManifestData,
    read_manifest_text,
    write_manifest_text,
)
from polybump.errors import ManifestWriteError
from polybump.versioning.semver import Version

logger = logging.getLogger(__name__)

SETTINGS_NAMES = ("settings.gradle.kts", "settings.gradle")
PROPERTIES_NAME = "gradle.properties"

_VERSION = re.compile(
    r"^[ \t]*version\s*(?:=\s*(?:project\.findProperty\([^)]*\)\s*\?:\s*)?)?"
    r"""(?P<quote>["'])(?P<value>[^"'\r\n]+)(?P=quote)""",
    re.M,
)
_PROPERTIES_VERSION = re.compile(r"^[ \t]*version[ \t]*[=:][ \t]*(?P<value>[^\s#]+)", re.M)
_PROJECT_DEPENDENCY = re.compile(r"""project\(\s*(?:path\s*[=:]\s*)?["']([^"']+)["']""")
_ROOT_NAME = re.compile(r"""rootProject\.name\s*=\s*["']([^"']+)["']""")
_INCLUDE = re.compile(r"^[ \t]*include\b(.*)$", re.M)
_QUOTED = re.compile(r"""["']([^"']+)["']""")


def _settings(directory: Path) -> Path | None:
    for name in SETTINGS_NAMES:
        if (directory / name).is_file():
            return directory / name
    return None


def project_path_to_dir(project_path: str) -> str:
    """``":libs:core"`` -> ``"libs/core"``."""
    return "/".join(part for part in project_path.split(":") if part)


class JavaEcosystem(Ecosystem):
    key = "java"
    display_name = "Java (Gradle)"
    manifest_names = ("build.gradle.kts", "build.gradle")
    default_publish_command = "./gradlew publish"

    def read(self, path: Path) -> ManifestData:
        text = read_manifest_text(path)

        version = None
        match = _VERSION.search(text)
        if match is not None:
            version = match.group("value").strip()
        elif (path.parent / PROPERTIES_NAME).is_file():
            properties = _PROPERTIES_VERSION.search(
                read_manifest_text(path.parent / PROPERTIES_NAME)
            )
            if properties is not None:
                version = properties.group("value")
        if version == "unspecified":
            version = None

        dependencies = {
            project_path_to_dir(m.group(1)).rsplit("/", 1)[-1]: ""
            for m in _PROJECT_DEPENDENCY.finditer(text)
            if project_path_to_dir(m.group(1))
        }

        name = path.parent.name
        members: list[str] = []
        settings = _settings(path.parent)
        if settings is not None:
            settings_text = read_manifest_text(settings)
            root_name = _ROOT_NAME.search(settings_text)
            if root_name is not None:
                name = root_name.group(1)
            for include in _INCLUDE.finditer(settings_text):
                members += [
                    project_path_to_dir(q.group(1)) for q in _QUOTED.finditer(include.group(1))
                ]

        return ManifestData(
            name=name,
            version=version,
            dependencies=dependencies,
            is_workspace=settings is not None,
            members=tuple(m for m in members if m),
        )

    def write_version(self, path: Path, new_version: str) -> None:
        text = read_manifest_text(path)
        match = _VERSION.search(text)
        if match is not None:
            updated = text[: match.start("value")] + new_version + text[match.end("value") :]
            write_manifest_text(path, updated)
            return

        properties_path = path.parent / PROPERTIES_NAME
        if properties_path.is_file():
            properties = read_manifest_text(properties_path)
            found = _PROPERTIES_VERSION.search(properties)
            if found is not None:
                logger.debug("Writing version to %s", properties_path)
                start, end = found.span("value")
                updated = properties[:start] + new_version + properties[end:]
                write_manifest_text(properties_path, updated)
                return
        raise ManifestWriteError(path, "no literal version to update")

    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        raise ManifestWriteError(path, f"project dependency '{dependency}' carries no version")

    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        # project() dependencies build against the sibling's source
        return True
