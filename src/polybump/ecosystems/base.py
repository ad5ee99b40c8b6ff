"""Capability interface every ecosystem implements.

The core never looks inside a manifest itself. It asks the ecosystem that
owns the file to read name/version/dependencies, to write a new version or a
new dependency constraint, and to answer whether a constraint admits a
version. Writers must leave every byte they were not asked to change intact.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from polybump.errors import ManifestParseError, ManifestWriteError
from polybump.versioning.ranges import rewrite_range
from polybump.versioning.semver import SEMVER, Version, VersionScheme


@dataclass(frozen=True)
class ManifestData:
    """What the core needs to know about one manifest.

    Attributes:
        name: Package name, ``None`` for unnamed workspace roots.
        version: Declared version string, ``None`` when absent or inherited.
        dependencies: Dependency name -> constraint (``""`` when unconstrained).
        is_workspace: Whether the manifest declares a workspace root.
        members: Member globs declared by a workspace root.
        inherited: Dependency names whose requirement lives in the workspace root.
    """

    name: str | None
    version: str | None
    dependencies: dict[str, str] = field(default_factory=dict)
    is_workspace: bool = False
    members: tuple[str, ...] = ()
    inherited: tuple[str, ...] = ()


def read_manifest_text(path: Path) -> str:
    """Read a manifest without newline translation.

    Raises:
        ManifestParseError: If the file cannot be read.
    """
    try:
        with open(path, encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestParseError(path, str(e)) from e


def write_manifest_text(path: Path, content: str) -> None:
    """Write a manifest without newline translation.

    Raises:
        ManifestWriteError: If the file cannot be written.
    """
    try:
        with open(path, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
    except OSError as e:
        raise ManifestWriteError(path, str(e)) from e


class Ecosystem(ABC):
    """Manifest accessor, project finder rules and range semantics of one ecosystem."""

    key: str = ""
    display_name: str = ""
    manifest_names: tuple[str, ...] = ()
    scheme: VersionScheme = SEMVER
    default_publish_command: str = ""
    default_constraint_prefix: str = "^"

    @abstractmethod
    def read(self, path: Path) -> ManifestData:
        """Read a manifest.

        Raises:
            ManifestParseError: If the manifest is malformed.
        """
        ...

    @abstractmethod
    def write_version(self, path: Path, new_version: str) -> None:
        """Replace the declared version, preserving everything else.

        Raises:
            ManifestWriteError: If the manifest cannot be updated.
        """
        ...

    @abstractmethod
    def write_dependency_constraint(self, path: Path, dependency: str, constraint: str) -> None:
        """Replace the constraint on a dependency in every section declaring it.

        Raises:
            ManifestWriteError: If the manifest cannot be updated.
        """
        ...

    @abstractmethod
    def constraint_satisfied(self, constraint: str, version: Version) -> bool:
        """Whether a dependency constraint admits the version."""
        ...

    def rewrite_constraint(self, constraint: str, version: Version) -> str:
        """Return a constraint that references the version, keeping the operator style."""
        return rewrite_range(constraint, version, self.default_constraint_prefix)

    def parse_version(self, version: str) -> Version:
        return self.scheme.parse(version)

    def format_version(self, version: Version) -> str:
        return self.scheme.format(version)

    def normalize_name(self, name: str) -> str:
        return name

    def owns(self, path: Path) -> bool:
        return path.name in self.manifest_names

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"
