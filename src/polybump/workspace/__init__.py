"""Workspace discovery and the package graph."""

from polybump.workspace.discovery import DiscoveryResult, discover_packages
from polybump.workspace.graph import DependencyGraph, Edge, EdgeKind
from polybump.workspace.package import Package, PackageKind
from polybump.workspace.workspace import Workspace

__all__ = [
    "DependencyGraph",
    "DiscoveryResult",
    "Edge",
    "EdgeKind",
    "Package",
    "PackageKind",
    "Workspace",
    "discover_packages",
]
