"""Check command implementation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console
from rich.table import Table

from polybump.changesets import find_missing_changesets
from polybump.commands.base import CommandContext, SyncCommand
from polybump.errors import GitError, PolybumpError
from polybump.filters.scope import filter_by_kind
from polybump.git import get_changed_files_since, is_git_repo, resolve_base_ref
from polybump.versioning.update_map import UpdateMap, generate_update_map
from polybump.workspace.package import PackageKind

if TYPE_CHECKING:
    from polybump.workspace import Edge, Package
    from polybump.workspace.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of check command.

    Attributes:
        packages: Discovered packages (narrowed by the kind filter), sorted by id.
        edges: Dependency edges of the workspace graph.
        update_map: Bumps the pending changesets would produce.
        missing_changesets: Changed packages not named by any changeset.
        changed_files: Files changed since the base branch.
        latest: The configured latest package, if it was found.
        warnings: Non-fatal problems (skipped manifests, unknown references,
            unavailable git).
    """

    packages: list[Package]
    edges: list[Edge]
    update_map: UpdateMap
    missing_changesets: list[Package] = field(default_factory=list)
    changed_files: list[str] = field(default_factory=list)
    latest: Package | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "packages": [
                {
                    "id": p.id,
                    "ecosystem": p.ecosystem,
                    "name": p.name,
                    "version": p.version,
                    "kind": p.kind.value,
                }
                for p in self.packages
            ],
            "edges": [
                {
                    "dependent": e.dependent,
                    "dependency": e.dependency,
                    "constraint": e.constraint,
                    "kind": e.kind.value,
                }
                for e in self.edges
            ],
            "updates": [
                {
                    "id": u.package_id,
                    "name": u.name,
                    "current": u.current_version,
                    "next": u.next_version,
                    "bump": u.bump.name.lower(),
                    "reasons": [str(r) for r in u.reasons],
                }
                for u in self.update_map
            ],
            "excluded": self.update_map.excluded,
            "missing_changesets": [p.id for p in self.missing_changesets],
            "changed_files": self.changed_files,
            "latest": (
                {"id": self.latest.id, "version": self.latest.version}
                if self.latest is not None
                else None
            ),
            "warnings": self.warnings,
        }


@dataclass
class CheckOptions:
    """Options for check command."""

    base_branch: str | None = None
    kind: PackageKind | None = None


class CheckCommand(SyncCommand[CheckResult]):
    """Report the workspace graph, pending bumps and missing changesets."""

    def __init__(self, context: CommandContext, options: CheckOptions | None = None) -> None:
        super().__init__(context)
        self.options = options or CheckOptions()

    def get_changed_files(self, warnings: list[str]) -> list[str]:
        """Files changed since the base branch. Git problems become warnings."""
        root = self.workspace.root
        if not is_git_repo(root):
            warnings.append("Not a git repository; skipping changed-file detection")
            return []
        base_branch = self.options.base_branch or self.workspace.config.base_branch
        try:
            base_ref = resolve_base_ref(base_branch, root)
            return get_changed_files_since(root, base_ref)
        except GitError as e:
            logger.warning("%s", e.message)
            warnings.append(e.message)
            return []

    def execute(self) -> CheckResult:
        """Execute the check command."""
        graph = self.workspace.graph
        changesets = self.store.list()
        update_map = generate_update_map(graph, changesets)

        warnings = [e.message for e in self.workspace.discovery_errors]
        warnings += [str(w) for w in update_map.warnings]
        warnings += [
            f"Excluding {package_id}: {reason}"
            for package_id, reason in update_map.excluded.items()
        ]

        latest = None
        latest_id = self.workspace.config.latest_package
        if latest_id:
            latest = graph.packages.get(latest_id)
            if latest is None:
                warnings.append(f"latest_package {latest_id} is not a discovered package")

        changed_files = self.get_changed_files(warnings)
        missing = find_missing_changesets(changed_files, graph, changesets)

        packages = filter_by_kind(list(graph.packages.values()), self.options.kind)
        return CheckResult(
            packages=sorted(packages, key=lambda p: p.id),
            edges=graph.edges,
            update_map=update_map,
            missing_changesets=missing,
            changed_files=changed_files,
            latest=latest,
            warnings=warnings,
        )


def check(
    workspace: Workspace,
    *,
    base_branch: str | None = None,
    kind: PackageKind | None = None,
) -> CheckResult:
    """Convenience function to inspect a workspace.

    Args:
        workspace: Workspace to inspect.
        base_branch: Override for the configured base branch.
        kind: Only list workspace roots or only plain packages.

    Returns:
        Check result.
    """
    context = CommandContext(workspace=workspace)
    cmd = CheckCommand(context, CheckOptions(base_branch=base_branch, kind=kind))
    return cmd.execute()


def handle_check_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
    json_output: bool = False,
    kind: PackageKind | None = None,
) -> None:
    try:
        result = check(workspace, kind=kind)
    except PolybumpError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    if json_output:
        console.print_json(json.dumps(result.to_dict()))
        return

    table = Table(title="Packages")
    table.add_column("Package", style="bold")
    table.add_column("Ecosystem")
    table.add_column("Version")
    table.add_column("Dependencies")
    for pkg in result.packages:
        deps = ", ".join(e.dependency for e in result.edges if e.dependent == pkg.id)
        table.add_row(pkg.id, pkg.ecosystem, pkg.version or "-", deps or "-")
    console.print(table)

    if result.latest is not None:
        console.print(
            f"Workspace version: [bold]{result.latest.version or '-'}[/bold] ({result.latest.id})"
        )

    if result.update_map.is_empty:
        console.print("[yellow]No pending updates[/yellow]")
    else:
        console.print(render_update_table(result.update_map))

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if result.missing_changesets:
        console.print("\n[red]Changed packages without a changeset:[/red]")
        for pkg in result.missing_changesets:
            console.print(f"  - {pkg.id}")
        console.print("Run [bold]polybump add[/bold] to record one.")


def render_update_table(update_map: UpdateMap, title: str = "Pending updates") -> Table:
    """Build the Package/Current/Next/Bump/Reason table."""
    table = Table(title=title)
    table.add_column("Package", style="bold")
    table.add_column("Current")
    table.add_column("Next", style="green")
    table.add_column("Bump")
    table.add_column("Reason")
    for update in update_map:
        table.add_row(
            update.package_id,
            update.current_version,
            update.next_version,
            update.bump.name.lower(),
            ", ".join(str(r) for r in update.reasons),
        )
    return table
