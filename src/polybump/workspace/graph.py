"""Cross-ecosystem dependency graph."""

from __future__ import annotations

import fnmatch
import heapq
import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from polybump.ecosystems import ECOSYSTEMS, Ecosystem
from polybump.errors import GraphCycleError, PackageNotFoundError
from polybump.workspace.package import Package

logger = logging.getLogger(__name__)


class EdgeKind(str, Enum):
    DECLARED = "declared"
    FORCED = "forced"


@dataclass(frozen=True)
class Edge:
    """Directed edge from a dependent to one of its dependencies.

    Attributes:
        dependent: Id of the package declaring the dependency.
        dependency: Id of the package depended upon.
        name: Dependency name as written in the dependent's manifest.
        constraint: Declared constraint (``""`` for forced edges).
        kind: Declared in a manifest, or forced by ``update_on``.
    """

    dependent: str
    dependency: str
    name: str
    constraint: str
    kind: EdgeKind = EdgeKind.DECLARED


class DependencyGraph:
    """Packages keyed by id with dependent -> dependency edges.

    Built once per run from discovered packages; immutable afterwards.
    """

    def __init__(self, packages: Iterable[Package], edges: Iterable[Edge]) -> None:
        self._packages: dict[str, Package] = {}
        for package in packages:
            if package.id in self._packages:
                raise ValueError(f"Duplicate package id '{package.id}'")
            self._packages[package.id] = package

        self._edges_from: dict[str, list[Edge]] = defaultdict(list)
        self._edges_to: dict[str, list[Edge]] = defaultdict(list)
        for edge in edges:
            self._edges_from[edge.dependent].append(edge)
            self._edges_to[edge.dependency].append(edge)

        self._check_acyclic()
        self._order = self._compute_order()

    @classmethod
    def build(
        cls,
        packages: Iterable[Package],
        update_on: Mapping[str, list[str]] | None = None,
        ecosystems: Mapping[str, Ecosystem] = ECOSYSTEMS,
    ) -> DependencyGraph:
        """Build the graph from discovered packages.

        Args:
            packages: Discovered packages.
            update_on: Trigger glob -> package ids/names forced to follow it.
            ecosystems: Registry used for per-ecosystem name normalisation.

        Returns:
            The dependency graph.

        Raises:
            GraphCycleError: If the edges form a cycle.
        """
        packages = list(packages)
        by_name: dict[tuple[str, str], list[Package]] = defaultdict(list)
        for package in packages:
            if package.name:
                ecosystem = ecosystems[package.ecosystem]
                by_name[(package.ecosystem, ecosystem.normalize_name(package.name))].append(package)

        edges: list[Edge] = []
        declared: set[tuple[str, str]] = set()
        for package in packages:
            ecosystem = ecosystems[package.ecosystem]
            for dep_name, constraint in package.dependencies.items():
                key = (package.ecosystem, ecosystem.normalize_name(dep_name))
                for target in by_name.get(key, ()):
                    if target.id == package.id:
                        continue
                    edges.append(Edge(package.id, target.id, dep_name, constraint))
                    declared.add((package.id, target.id))

        for trigger_glob, followers in (update_on or {}).items():
            triggers = [
                p
                for p in packages
                if fnmatch.fnmatchcase(p.id, trigger_glob)
                or (p.name is not None and fnmatch.fnmatchcase(p.name, trigger_glob))
            ]
            if not triggers:
                logger.warning("update_on trigger '%s' matches no package", trigger_glob)
            for follower_ref in followers:
                followers_found = [p for p in packages if follower_ref in (p.id, p.name)]
                if not followers_found:
                    logger.warning("update_on target '%s' matches no package", follower_ref)
                for follower in followers_found:
                    for trigger in triggers:
                        pair = (follower.id, trigger.id)
                        if follower.id == trigger.id or pair in declared:
                            continue
                        declared.add(pair)
                        edges.append(
                            Edge(
                                follower.id,
                                trigger.id,
                                trigger.display_name,
                                "",
                                EdgeKind.FORCED,
                            )
                        )

        return cls(packages, edges)

    def _check_acyclic(self) -> None:
        white, grey, black = 0, 1, 2
        color = dict.fromkeys(self._packages, white)
        stack: list[str] = []

        def visit(node: str) -> None:
            color[node] = grey
            stack.append(node)
            for edge in sorted(self._edges_from.get(node, ()), key=lambda e: e.dependency):
                target = edge.dependency
                if color[target] == grey:
                    cycle = stack[stack.index(target) :]
                    raise GraphCycleError([*cycle, target])
                if color[target] == white:
                    visit(target)
            stack.pop()
            color[node] = black

        for node in sorted(self._packages):
            if color[node] == white:
                visit(node)

    def _compute_order(self) -> list[str]:
        remaining = {
            node: len({e.dependency for e in self._edges_from.get(node, ())})
            for node in self._packages
        }
        ready = [node for node, count in remaining.items() if count == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for dependent in sorted({e.dependent for e in self._edges_to.get(node, ())}):
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)
        return order

    @property
    def packages(self) -> dict[str, Package]:
        return dict(self._packages)

    @property
    def edges(self) -> list[Edge]:
        return [edge for node in self._order for edge in self._edges_from.get(node, ())]

    def __contains__(self, package_id: object) -> bool:
        return package_id in self._packages

    def __len__(self) -> int:
        return len(self._packages)

    def get_package(self, package_id: str) -> Package:
        """Get a package by id.

        Raises:
            PackageNotFoundError: If no package has that id.
        """
        try:
            return self._packages[package_id]
        except KeyError:
            raise PackageNotFoundError(package_id, list(self._packages)) from None

    def find(self, reference: str) -> list[Package]:
        """Resolve an id or a name to packages; a name may select several."""
        if reference in self._packages:
            return [self._packages[reference]]
        matches = []
        for package in self._packages.values():
            if package.name is None:
                continue
            normalize = ECOSYSTEMS[package.ecosystem].normalize_name
            if package.name == reference or normalize(package.name) == normalize(reference):
                matches.append(package)
        return sorted(matches, key=lambda p: p.id)

    def edges_from(self, package_id: str) -> list[Edge]:
        """Edges from a dependent to its dependencies."""
        return list(self._edges_from.get(package_id, ()))

    def edges_to(self, package_id: str) -> list[Edge]:
        """Edges from dependents onto this package."""
        return list(self._edges_to.get(package_id, ()))

    def dependencies_of(self, package_id: str) -> list[Package]:
        ids = sorted({e.dependency for e in self._edges_from.get(package_id, ())})
        return [self._packages[i] for i in ids]

    def dependents_of(self, package_id: str) -> list[Package]:
        ids = sorted({e.dependent for e in self._edges_to.get(package_id, ())})
        return [self._packages[i] for i in ids]

    def _walk(self, start: str, step: str) -> list[Package]:
        seen: set[str] = set()
        frontier = [start]
        while frontier:
            current = frontier.pop()
            edges = self._edges_to if step == "dependents" else self._edges_from
            for edge in edges.get(current, ()):
                nxt = edge.dependent if step == "dependents" else edge.dependency
                if nxt not in seen:
                    seen.add(nxt)
                    frontier.append(nxt)
        return [self._packages[i] for i in self._order if i in seen]

    def get_transitive_dependents(self, package_id: str) -> list[Package]:
        """All packages that directly or indirectly depend on this one, in topological order."""
        return self._walk(package_id, "dependents")

    def get_transitive_dependencies(self, package_id: str) -> list[Package]:
        """All packages this one directly or indirectly depends on, in topological order."""
        return self._walk(package_id, "dependencies")

    def topological_order(self, only: Iterable[str] | None = None) -> list[Package]:
        """Packages with every dependency strictly before its dependents.

        Ties are broken by id, so the order is deterministic.

        Args:
            only: Restrict the result to these ids (order still global).
        """
        if only is None:
            return [self._packages[i] for i in self._order]
        wanted = set(only)
        return [self._packages[i] for i in self._order if i in wanted]
