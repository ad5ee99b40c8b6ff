"""Workspace: the root directory, its configuration and its package graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from polybump.config import PolybumpConfig, find_workspace_root, load_config
from polybump.errors import DiscoveryError, PackageNotFoundError
from polybump.workspace.discovery import discover_packages
from polybump.workspace.graph import DependencyGraph
from polybump.workspace.package import Package

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """A discovered polybump workspace.

    Rebuilt from manifests on every run; nothing is cached between runs.

    Attributes:
        root: Workspace root directory (holds ``.polybump/``).
        config: Loaded configuration.
        graph: Dependency graph over every discovered package.
        discovery_errors: Manifests skipped during discovery.
    """

    root: Path
    config: PolybumpConfig
    graph: DependencyGraph
    discovery_errors: list[DiscoveryError] = field(default_factory=list)

    @classmethod
    def discover(cls, path: Path | None = None) -> Workspace:
        """Locate the workspace root from ``path`` and load everything in it.

        Raises:
            WorkspaceNotFoundError: If no ``.polybump`` directory is found.
            ConfigurationError: If the configuration is invalid.
            GraphCycleError: If workspace dependencies form a cycle.
        """
        root = find_workspace_root(path)
        return cls.load(root, load_config(root))

    @classmethod
    def load(cls, root: Path, config: PolybumpConfig) -> Workspace:
        """Discover packages under a known root with an explicit configuration."""
        root = root.resolve()
        result = discover_packages(root, config)
        graph = DependencyGraph.build(result.packages, config.update_on)
        return cls(root=root, config=config, graph=graph, discovery_errors=result.errors)

    @property
    def packages(self) -> dict[str, Package]:
        return self.graph.packages

    def get_package(self, reference: str) -> Package:
        """Get a single package by id or by name.

        Raises:
            PackageNotFoundError: If nothing matches.
        """
        matches = self.graph.find(reference)
        if not matches:
            raise PackageNotFoundError(reference, list(self.packages))
        return matches[0]
