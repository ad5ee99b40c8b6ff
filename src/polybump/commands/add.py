"""Add command implementation: record a changeset."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import typer
from rich.console import Console

from polybump.commands.base import CommandContext, SyncCommand
from polybump.errors import ChangesetError, PackageNotFoundError, PolybumpError
from polybump.versioning.semver import BumpType

if TYPE_CHECKING:
    from polybump.workspace.workspace import Workspace


@dataclass
class AddChangesetOptions:
    packages: list[str] = field(default_factory=list)
    bump: BumpType = BumpType.PATCH
    summary: str = ""


@dataclass
class AddChangesetResult:
    """Result of AddChangesetCommand."""

    changeset_id: str
    packages: list[str]
    bump: BumpType


class AddChangesetCommand(SyncCommand[AddChangesetResult]):
    """Record that some packages changed and how much."""

    def __init__(self, context: CommandContext, options: AddChangesetOptions) -> None:
        super().__init__(context)
        self.options = options

    def validate(self) -> list[str]:
        errors = []
        if not self.options.packages:
            errors.append("At least one package is required")
        if self.options.bump is BumpType.NONE:
            errors.append("Bump must be patch, minor or major")
        if not self.options.summary.strip():
            errors.append("A summary is required")
        return errors

    def execute(self) -> AddChangesetResult:
        errors = self.validate()
        if errors:
            raise ChangesetError("; ".join(errors))

        # each reference must select something now, even if it is stored verbatim
        for reference in self.options.packages:
            if not self.workspace.graph.find(reference):
                raise PackageNotFoundError(reference, list(self.workspace.packages))

        changeset_id = self.store.create(
            self.options.packages, self.options.bump, self.options.summary
        )
        return AddChangesetResult(
            changeset_id=changeset_id,
            packages=sorted(set(self.options.packages)),
            bump=self.options.bump,
        )


def add_changeset(
    workspace: Workspace,
    packages: list[str],
    bump: BumpType,
    summary: str,
) -> AddChangesetResult:
    """Convenience function to record a changeset.

    Args:
        workspace: Workspace the changeset belongs to.
        packages: Package ids or names.
        bump: Bump severity.
        summary: Changelog text.

    Returns:
        Result holding the new changeset id.
    """
    context = CommandContext(workspace=workspace)
    options = AddChangesetOptions(packages=packages, bump=bump, summary=summary)
    return AddChangesetCommand(context, options).execute()


def handle_add_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
    packages: list[str] | None = None,
    bump: str | None = None,
    summary: str | None = None,
) -> None:
    """Handle the add command, prompting for whatever was not given."""
    from polybump import interactive

    bump_type: BumpType | None = None
    if bump:
        try:
            bump_type = BumpType(bump.lower())
        except ValueError as e:
            error_console.print(f"[red]Invalid bump type:[/red] {bump}")
            raise typer.Exit(1) from e

    if not packages:
        selected = interactive.select_packages(list(workspace.packages.values()))
        packages = [p.id for p in selected]
        if not packages:
            console.print("[yellow]No packages selected.[/yellow]")
            raise typer.Exit(1)
    if bump_type is None:
        bump_type = interactive.select_bump()
        if bump_type is None:
            raise typer.Exit(1)
    if not summary:
        summary = interactive.ask_summary()
        if not summary:
            raise typer.Exit(1)

    try:
        result = add_changeset(workspace, packages, bump_type, summary)
    except PolybumpError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    console.print(
        f"[green]Added changeset {result.changeset_id}[/green] "
        f"({result.bump.value}: {', '.join(result.packages)})"
    )
