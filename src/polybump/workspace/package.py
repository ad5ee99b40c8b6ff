"""Package representation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class PackageKind(str, Enum):
    PACKAGE = "package"
    WORKSPACE = "workspace"


@dataclass(frozen=True)
class Package:
    """A versioned project discovered in the workspace.

    Attributes:
        id: Manifest path relative to the workspace root (POSIX form).
        ecosystem: Key of the ecosystem owning the manifest.
        kind: Plain package or workspace root.
        name: Declared name; ``None`` for unnamed workspace roots.
        version: Declared version; ``None`` when absent or inherited.
        path: Directory holding the manifest.
        manifest_path: Absolute path to the manifest.
        dependencies: Dependency name -> constraint (``""`` when unconstrained).
        members: Ids of member packages (workspace roots only).
        inherited_dependencies: Dependency names whose constraint is declared
            by the enclosing workspace root rather than this manifest.
    """

    id: str
    ecosystem: str
    kind: PackageKind
    name: str | None
    version: str | None
    path: Path
    manifest_path: Path
    dependencies: dict[str, str] = field(default_factory=dict, hash=False, compare=False)
    members: tuple[str, ...] = ()
    inherited_dependencies: frozenset[str] = frozenset()

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_workspace(self) -> bool:
        return self.kind is PackageKind.WORKSPACE

    def __str__(self) -> str:
        return f"{self.display_name}@{self.version or '?'}"
