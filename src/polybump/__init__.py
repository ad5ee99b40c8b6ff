"""polybump - changeset-driven versioning for polyglot monorepos.

Keeps versions of Node, Python, Rust and Dart packages that live in one
repository consistent with each other:
- Workspace discovery across ecosystems and a dependency graph
- Changesets recording intended bumps
- Update propagation to dependents, with constraint rewriting
- Format-preserving manifest edits, changelogs and ordered publishing
"""

from polybump.changesets import Changeset, ChangesetStore
from polybump.config import PolybumpConfig, load_config
from polybump.errors import (
    ChangesetError,
    ChangesetReferenceWarning,
    ConfigurationError,
    DiscoveryError,
    GitError,
    GraphCycleError,
    ManifestParseError,
    ManifestWriteError,
    PackageNotFoundError,
    PolybumpError,
    PublishCommandError,
    VersionParseError,
    WorkspaceNotFoundError,
)
from polybump.orchestrator import OrchestrationMode, OrchestrationResult, PublishOrchestrator
from polybump.versioning.semver import BumpType, Version
from polybump.versioning.update_map import PackageUpdate, UpdateMap, generate_update_map
from polybump.workspace import DependencyGraph, Package, Workspace

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core
    "Workspace",
    "Package",
    "DependencyGraph",
    "PolybumpConfig",
    "load_config",
    # Changesets and updates
    "BumpType",
    "Changeset",
    "ChangesetStore",
    "PackageUpdate",
    "UpdateMap",
    "Version",
    "generate_update_map",
    # Orchestration
    "OrchestrationMode",
    "OrchestrationResult",
    "PublishOrchestrator",
    # Errors
    "PolybumpError",
    "ChangesetError",
    "ChangesetReferenceWarning",
    "ConfigurationError",
    "DiscoveryError",
    "GitError",
    "GraphCycleError",
    "ManifestParseError",
    "ManifestWriteError",
    "PackageNotFoundError",
    "PublishCommandError",
    "VersionParseError",
    "WorkspaceNotFoundError",
]
