"""Update map generation: which packages move to which version, and why.

Direct bumps come from changesets. Every package whose dependency is bumped
inherits at least a patch bump; when the dependency's next version falls
outside the dependent's declared constraint, the dependent inherits the
dependency's full bump instead. Because the graph is walked once in
topological order, every dependency is final before its dependents are
looked at.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum

from polybump.changesets.models import Changeset
from polybump.ecosystems import ECOSYSTEMS, Ecosystem
from polybump.errors import ChangesetReferenceWarning, VersionParseError
from polybump.versioning.semver import BumpType, Version, merge_bumps
from polybump.workspace.graph import DependencyGraph, EdgeKind

logger = logging.getLogger(__name__)

ConstraintPredicate = Callable[[str, str, Version], bool]
"""``(ecosystem_key, constraint, version) -> satisfied``."""


class ReasonKind(str, Enum):
    CHANGESET = "changeset"
    DEPENDENCY = "dependency"


@dataclass(frozen=True)
class Reason:
    """Why a package is bumped: a changeset id or the id of a bumped dependency."""

    kind: ReasonKind
    ref: str

    def __str__(self) -> str:
        prefix = "changeset" if self.kind is ReasonKind.CHANGESET else "dependency"
        return f"{prefix} {self.ref}"


@dataclass(frozen=True)
class PackageUpdate:
    """Planned bump for a single package.

    Attributes:
        package_id: Package id.
        name: Package display name.
        current_version: Version before the bump.
        bump: Merged bump type (never ``NONE``).
        next_version: Version after the bump, formatted by its ecosystem.
        reasons: Changeset ids first (creation order), then the ids of
            dependencies the bump was inherited from (topological order).
    """

    package_id: str
    name: str
    current_version: str
    bump: BumpType
    next_version: str
    reasons: tuple[Reason, ...] = ()

    @property
    def changeset_ids(self) -> list[str]:
        return [r.ref for r in self.reasons if r.kind is ReasonKind.CHANGESET]

    @property
    def inherited_from(self) -> list[str]:
        return [r.ref for r in self.reasons if r.kind is ReasonKind.DEPENDENCY]


@dataclass
class UpdateMap:
    """Ordered mapping of package id to its planned update.

    Iteration follows topological order. Never persisted.
    """

    updates: dict[str, PackageUpdate] = field(default_factory=dict)
    warnings: list[ChangesetReferenceWarning] = field(default_factory=list)
    excluded: dict[str, str] = field(default_factory=dict)

    def __iter__(self) -> Iterator[PackageUpdate]:
        return iter(self.updates.values())

    def __len__(self) -> int:
        return len(self.updates)

    def __contains__(self, package_id: object) -> bool:
        return package_id in self.updates

    def __getitem__(self, package_id: str) -> PackageUpdate:
        return self.updates[package_id]

    def get(self, package_id: str) -> PackageUpdate | None:
        return self.updates.get(package_id)

    @property
    def is_empty(self) -> bool:
        return not self.updates


def default_constraint_predicate(
    ecosystems: Mapping[str, Ecosystem] = ECOSYSTEMS,
) -> ConstraintPredicate:
    """The per-ecosystem range check."""

    def satisfied(ecosystem: str, constraint: str, version: Version) -> bool:
        if not constraint.strip():
            return True
        return ecosystems[ecosystem].constraint_satisfied(constraint, version)

    return satisfied


def _seed(
    graph: DependencyGraph,
    changesets: Iterable[Changeset],
    warnings: list[ChangesetReferenceWarning],
) -> tuple[dict[str, BumpType], dict[str, list[str]]]:
    direct: dict[str, BumpType] = {}
    sources: dict[str, list[str]] = {}
    for changeset in sorted(changesets, key=lambda c: (c.created_at, c.id)):
        for reference in sorted(changeset.packages):
            matches = graph.find(reference)
            if not matches:
                warning = ChangesetReferenceWarning(changeset.id, reference)
                logger.warning("%s", warning)
                warnings.append(warning)
                continue
            for package in matches:
                current = direct.get(package.id, BumpType.NONE)
                direct[package.id] = merge_bumps(current, changeset.bump)
                ids = sources.setdefault(package.id, [])
                if changeset.id not in ids:
                    ids.append(changeset.id)
    return direct, sources


def generate_update_map(
    graph: DependencyGraph,
    changesets: Iterable[Changeset],
    ecosystems: Mapping[str, Ecosystem] = ECOSYSTEMS,
    constraint_satisfied: ConstraintPredicate | None = None,
) -> UpdateMap:
    """Compute the minimal consistent set of version bumps.

    Args:
        graph: Workspace dependency graph.
        changesets: Pending changesets.
        ecosystems: Registry used to parse/format versions and check ranges.
        constraint_satisfied: Override for the range check.

    Returns:
        The update map, in topological order.
    """
    satisfied = constraint_satisfied or default_constraint_predicate(ecosystems)
    result = UpdateMap()
    direct, changeset_sources = _seed(graph, changesets, result.warnings)

    order = graph.topological_order()
    position = {package.id: index for index, package in enumerate(order)}
    bumps: dict[str, BumpType] = {}
    next_versions: dict[str, Version] = {}

    for package in order:
        bump = direct.get(package.id, BumpType.NONE)
        inherited_from: list[str] = []
        for edge in graph.edges_from(package.id):
            if edge.dependency not in next_versions:
                continue
            inherited = BumpType.PATCH
            if edge.kind is EdgeKind.DECLARED and not satisfied(
                package.ecosystem, edge.constraint, next_versions[edge.dependency]
            ):
                inherited = bumps[edge.dependency]
            bump = merge_bumps(bump, inherited)
            if edge.dependency not in inherited_from:
                inherited_from.append(edge.dependency)

        if bump is BumpType.NONE:
            continue

        ecosystem = ecosystems[package.ecosystem]
        if package.version is None:
            reason = "no version declared"
            logger.warning("Excluding %s: %s", package.id, reason)
            result.excluded[package.id] = reason
            continue
        try:
            current = ecosystem.parse_version(package.version)
        except VersionParseError:
            error = VersionParseError(package.version, package=package.id)
            logger.warning("Excluding %s: %s", package.id, error.message)
            result.excluded[package.id] = error.message
            continue

        next_version = current.bump(bump)
        bumps[package.id] = bump
        next_versions[package.id] = next_version

        inherited_from.sort(key=position.__getitem__)
        reasons = [Reason(ReasonKind.CHANGESET, c) for c in changeset_sources.get(package.id, [])]
        reasons += [Reason(ReasonKind.DEPENDENCY, d) for d in inherited_from]
        result.updates[package.id] = PackageUpdate(
            package_id=package.id,
            name=package.display_name,
            current_version=package.version,
            bump=bump,
            next_version=ecosystem.format_version(next_version),
            reasons=tuple(reasons),
        )

    return result
