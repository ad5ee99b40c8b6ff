"""Apply an update map: write versions, fix constraints, log, consume, publish.

Packages are processed one at a time in topological order so that every
dependency has its new version on disk before its dependents are touched.
There is no cross-package rollback: when a package fails, the packages
before it keep their changes and the remaining ones are reported unreached.

Changesets are consumed as soon as the writes they asked for are on disk.
Publishing is a second pass over the written packages: each one is recorded
as unpublished before any command runs and cleared once its own command
succeeds, so the next publish run retries only the publish step instead of
bumping the version again.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from polybump.changesets.models import Changeset
from polybump.changesets.store import ChangesetStore
from polybump.config import PolybumpConfig
from polybump.ecosystems import ECOSYSTEMS, Ecosystem
from polybump.errors import PolybumpError, PublishCommandError
from polybump.execution.results import ExecutionResult
from polybump.execution.runner import expand_command, run_in_package
from polybump.versioning.changelog import generate_changelog_entry, prepend_to_changelog
from polybump.versioning.semver import Version
from polybump.versioning.update_map import PackageUpdate, UpdateMap
from polybump.workspace.graph import DependencyGraph, EdgeKind
from polybump.workspace.package import Package

logger = logging.getLogger(__name__)


class OrchestrationMode(str, Enum):
    DRY_RUN = "dry-run"
    UPDATE = "update"
    PUBLISH = "publish"


@dataclass(frozen=True)
class ConstraintRewrite:
    """A dependency constraint that no longer admits the dependency's new version."""

    dependency_id: str
    dependency_name: str
    old: str
    new: str


@dataclass
class PackagePlan:
    """Everything that will happen to one package.

    ``update`` is ``None`` for packages that are not bumped themselves: a
    versionless workspace root whose shared constraints need rewriting, or a
    package whose earlier publish failed and is only published again.
    """

    package: Package
    update: PackageUpdate | None
    rewrites: list[ConstraintRewrite] = field(default_factory=list)
    publish_command: str | None = None
    changelog_path: Path | None = None

    @property
    def version(self) -> str | None:
        """Version the package ends up at."""
        return self.update.next_version if self.update is not None else self.package.version

    @property
    def action(self) -> str:
        if self.update is not None:
            return self.update.bump.name.lower()
        return "constraints" if self.rewrites else "publish"


@dataclass
class OrchestrationResult:
    """Outcome of an orchestration run.

    Attributes:
        mode: Mode the run used.
        plan: Per-package plan, in processing order.
        succeeded: Ids of packages fully processed.
        failed: Id -> error for packages that failed.
        unreached: Ids never processed because of a halt or cancellation.
        cancelled: Whether the run was cancelled.
        publish_results: Id -> publish command outcome.
    """

    mode: OrchestrationMode
    plan: list[PackagePlan] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, PolybumpError] = field(default_factory=dict)
    unreached: list[str] = field(default_factory=list)
    cancelled: bool = False
    publish_results: dict[str, ExecutionResult] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed and not self.unreached and not self.cancelled

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "plan": [
                {
                    "id": p.package.id,
                    "name": p.package.name,
                    "action": p.action,
                    "current": p.package.version,
                    "next": p.version,
                    "rewrites": [
                        {"dependency": r.dependency_id, "old": r.old, "new": r.new}
                        for r in p.rewrites
                    ],
                    "publish": p.publish_command,
                }
                for p in self.plan
            ],
            "succeeded": self.succeeded,
            "failed": {package_id: e.message for package_id, e in self.failed.items()},
            "unreached": self.unreached,
            "cancelled": self.cancelled,
            "success": self.success,
        }


class PublishOrchestrator:
    """Sequentially applies an update map to the workspace.

    Example:
        orchestrator = PublishOrchestrator(graph, update_map, config, store)
        result = await orchestrator.run()
    """

    def __init__(
        self,
        graph: DependencyGraph,
        update_map: UpdateMap,
        config: PolybumpConfig,
        store: ChangesetStore,
        mode: OrchestrationMode = OrchestrationMode.UPDATE,
        *,
        ecosystems: Mapping[str, Ecosystem] = ECOSYSTEMS,
        include_publish: bool | None = None,
        publish_filter: Callable[[Package], bool] | None = None,
        env: dict[str, str] | None = None,
        cancel_event: threading.Event | None = None,
        on_stdout: Callable[[str], None] | None = None,
        on_stderr: Callable[[str], None] | None = None,
    ) -> None:
        self.graph = graph
        self.update_map = update_map
        self.config = config
        self.store = store
        self.mode = mode
        self.ecosystems = ecosystems
        self.include_publish = (
            mode is OrchestrationMode.PUBLISH if include_publish is None else include_publish
        )
        self.publish_filter = publish_filter
        self.env = env or {}
        self._cancel_event = cancel_event or threading.Event()
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr

    def cancel(self) -> None:
        """Stop before the next package. The current one is finished first."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _next_version(self, package_id: str) -> Version:
        package = self.graph.get_package(package_id)
        ecosystem = self.ecosystems[package.ecosystem]
        return ecosystem.parse_version(self.update_map[package_id].next_version)

    def _plan_rewrites(self, package: Package) -> list[ConstraintRewrite]:
        ecosystem = self.ecosystems[package.ecosystem]
        rewrites: list[ConstraintRewrite] = []
        for edge in self.graph.edges_from(package.id):
            if edge.kind is not EdgeKind.DECLARED or edge.dependency not in self.update_map:
                continue
            # the workspace root owns the requirement and is rewritten instead
            if edge.name in package.inherited_dependencies:
                continue
            if not edge.constraint.strip():
                continue
            version = self._next_version(edge.dependency)
            if ecosystem.constraint_satisfied(edge.constraint, version):
                continue
            rewrites.append(
                ConstraintRewrite(
                    dependency_id=edge.dependency,
                    dependency_name=edge.name,
                    old=edge.constraint,
                    new=ecosystem.rewrite_constraint(edge.constraint, version),
                )
            )
        return rewrites

    def _publishes(self, package: Package) -> bool:
        return self.include_publish and (
            self.publish_filter is None or self.publish_filter(package)
        )

    def _publish_command(self, package: Package, version: str) -> str:
        ecosystem = self.ecosystems[package.ecosystem]
        template = self.config.publish_command_for(
            package.id, ecosystem.key, ecosystem.default_publish_command
        )
        return expand_command(template, package, version)

    def _extra_ids(self) -> dict[str, list[ConstraintRewrite] | None]:
        """Packages planned without a bump of their own.

        Versionless packages get their violated constraints rewritten;
        packages left unpublished by an earlier run are published again.
        """
        extra: dict[str, list[ConstraintRewrite] | None] = {}
        for package in self.graph.packages.values():
            if package.id in self.update_map or package.version is not None:
                continue
            rewrites = self._plan_rewrites(package)
            if rewrites:
                extra[package.id] = rewrites
        if self.include_publish:
            for package_id in self.store.unpublished():
                if package_id in self.graph.packages and package_id not in self.update_map:
                    extra.setdefault(package_id, None)
        return extra

    def plan(self) -> list[PackagePlan]:
        """Compute what would happen, without touching anything."""
        extra = self._extra_ids()
        plans: list[PackagePlan] = []
        order = self.graph.topological_order(only=[*self.update_map.updates, *extra])
        for package in order:
            update = self.update_map.get(package.id)
            if update is None:
                rewrites = extra[package.id]
                if rewrites is not None:
                    plans.append(PackagePlan(package=package, update=None, rewrites=rewrites))
                elif self._publishes(package) and package.version is not None:
                    plans.append(
                        PackagePlan(
                            package=package,
                            update=None,
                            publish_command=self._publish_command(package, package.version),
                        )
                    )
                continue

            publish_command = None
            if self._publishes(package):
                publish_command = self._publish_command(package, update.next_version)
            changelog_path = None
            if self.config.changelog.enabled:
                changelog_path = package.path / self.config.changelog.filename
            plans.append(
                PackagePlan(
                    package=package,
                    update=update,
                    rewrites=self._plan_rewrites(package),
                    publish_command=publish_command,
                    changelog_path=changelog_path,
                )
            )
        return plans

    async def run(self) -> OrchestrationResult:
        """Apply the plan according to the mode.

        Every package is written first, in order. In publish mode the
        packages with a publish command are then recorded as unpublished and
        published in the same order, each one cleared from the record once
        its command succeeds.

        Returns:
            The orchestration result. In dry-run mode only ``plan`` is set.
        """
        plans = self.plan()
        result = OrchestrationResult(mode=self.mode, plan=plans)
        if self.mode is OrchestrationMode.DRY_RUN:
            return result

        written = self._write_all(plans, result)
        if self.mode is not OrchestrationMode.PUBLISH:
            result.succeeded = written
            return result

        publishing = [
            (p, p.publish_command) for p in plans if p.publish_command and p.package.id in written
        ]
        waiting = {p.package.id for p, _ in publishing}
        result.succeeded = [package_id for package_id in written if package_id not in waiting]
        if not result.success:
            result.unreached += [p.package.id for p, _ in publishing]
            return result

        await self._publish_all(publishing, result)
        order = [p.package.id for p in plans]
        result.succeeded.sort(key=order.index)
        return result

    def _write_all(self, plans: list[PackagePlan], result: OrchestrationResult) -> list[str]:
        """Write versions, constraints and changelogs, consuming changesets as they commit."""
        changesets = {c.id: c for c in self.store.list()}
        consumed: set[str] = set()
        written: list[str] = []

        for index, plan in enumerate(plans):
            package_id = plan.package.id
            if self.cancelled:
                logger.warning("Cancelled before %s", package_id)
                result.cancelled = True
                result.unreached += [p.package.id for p in plans[index:]]
                break
            try:
                self._write(plan, changesets)
                written.append(package_id)
                self._consume(plan, changesets, consumed, set(written))
                if self.mode is OrchestrationMode.PUBLISH and plan.publish_command:
                    self.store.mark_unpublished(package_id)
            except PolybumpError as e:
                logger.error("%s", e.message)
                result.failed[package_id] = e
                result.unreached += [p.package.id for p in plans[index + 1 :]]
                break
        return written

    async def _publish_all(
        self, publishing: list[tuple[PackagePlan, str]], result: OrchestrationResult
    ) -> None:
        for index, (plan, command) in enumerate(publishing):
            package_id = plan.package.id
            if self.cancelled:
                logger.warning("Cancelled before publishing %s", package_id)
                result.cancelled = True
                result.unreached += [p.package.id for p, _ in publishing[index:]]
                return
            try:
                await self._publish(plan, command, result)
            except PublishCommandError as e:
                logger.error("%s", e.message)
                result.failed[package_id] = e
                if self.config.continue_on_error:
                    continue
                result.unreached += [p.package.id for p, _ in publishing[index + 1 :]]
                return
            result.succeeded.append(package_id)

    def _write(self, plan: PackagePlan, changesets: dict[str, Changeset]) -> None:
        package, update = plan.package, plan.update
        ecosystem = self.ecosystems[package.ecosystem]

        if update is not None:
            logger.info("%s: %s -> %s", package.id, update.current_version, update.next_version)
            ecosystem.write_version(package.manifest_path, update.next_version)
        for rewrite in plan.rewrites:
            logger.info(
                "%s: %s constraint %s -> %s",
                package.id,
                rewrite.dependency_name,
                rewrite.old,
                rewrite.new,
            )
            ecosystem.write_dependency_constraint(
                package.manifest_path, rewrite.dependency_name, rewrite.new
            )

        if update is not None and plan.changelog_path is not None:
            dependency_updates = [
                (self.update_map[dep].name, self.update_map[dep].next_version)
                for dep in update.inherited_from
            ]
            entry = generate_changelog_entry(
                update.next_version,
                [changesets[c] for c in update.changeset_ids if c in changesets],
                dependency_updates,
            )
            prepend_to_changelog(plan.changelog_path, entry)

    async def _publish(
        self, plan: PackagePlan, command: str, result: OrchestrationResult
    ) -> None:
        package = plan.package
        execution = await run_in_package(
            package,
            command,
            version=plan.version,
            env=self.env,
            timeout=self.config.publish_timeout,
            on_stdout=self._on_stdout,
            on_stderr=self._on_stderr,
        )
        result.publish_results[package.id] = execution
        if not execution.success:
            raise PublishCommandError(
                package.id, command, execution.exit_code, execution.stderr
            )
        self.store.mark_published(package.id)

    def _finished(self, reference: str, done: Iterable[str]) -> bool:
        selected = {p.id for p in self.graph.find(reference)}
        # references to unknown packages are ignored, so they never hold a changeset back
        return all(i in done or i not in self.update_map for i in selected)

    def _consume(
        self,
        plan: PackagePlan,
        changesets: dict[str, Changeset],
        consumed: set[str],
        done: set[str],
    ) -> None:
        """Archive the references satisfied once this package's writes committed.

        A reference by name may select several packages; it is consumed
        only after every one of them that is being updated has been written.
        """
        if plan.update is None:
            return
        for changeset_id in plan.update.changeset_ids:
            changeset = changesets.get(changeset_id)
            if changeset is None or changeset_id in consumed:
                continue
            finished = [r for r in changeset.packages if self._finished(r, done)]
            if not finished:
                continue
            self.store.archive(changeset_id, finished)
            remaining = changeset.packages - set(finished)
            if remaining:
                changesets[changeset_id] = changeset.model_copy(update={"packages": remaining})
            else:
                consumed.add(changeset_id)
