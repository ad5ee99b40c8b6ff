"""Publish command implementation."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from rich.console import Console

from polybump.commands.base import CommandContext
from polybump.commands.update import UpdateCommand, UpdateOptions, handle_orchestration
from polybump.ecosystems import ECOSYSTEMS
from polybump.filters.scope import normalize_project
from polybump.orchestrator import OrchestrationMode, OrchestrationResult

if TYPE_CHECKING:
    from polybump.workspace.workspace import Workspace


class PublishCommand(UpdateCommand):
    """Update, then run each package's publish command in dependency order.

    A package's version, constraints and changelog are written and its
    changesets consumed before its publish command runs. A failed publish is
    recorded and retried, without another bump, by the next publish run.
    """

    mode = OrchestrationMode.PUBLISH

    def validate(self) -> list[str]:
        errors = [
            f"Unknown language '{language}' (known: {', '.join(sorted(ECOSYSTEMS))})"
            for language in self.options.languages
            if language.lower() not in ECOSYSTEMS
        ]
        packages = self.workspace.graph.packages
        errors += [
            f"Unknown project '{project}'"
            for project in self.options.projects
            if normalize_project(project) not in packages
        ]
        return errors


async def publish(
    workspace: Workspace,
    *,
    dry_run: bool = False,
    continue_on_error: bool = False,
    cancel_event: threading.Event | None = None,
    languages: list[str] | None = None,
    projects: list[str] | None = None,
    env: dict[str, str] | None = None,
) -> OrchestrationResult:
    """Convenience function to update and publish.

    Args:
        workspace: Workspace to publish.
        dry_run: Only compute the plan, publish commands included.
        continue_on_error: Keep going after a failed publish command.
        cancel_event: Set to stop before the next package.
        languages: Only publish packages of these ecosystems.
        projects: Only publish packages with these ids.
        env: Extra environment variables for publish commands.

    Returns:
        Orchestration result with one publish result per attempted package.
    """
    context = CommandContext(workspace=workspace, dry_run=dry_run, env=dict(env or {}))
    options = UpdateOptions(
        continue_on_error=continue_on_error,
        cancel_event=cancel_event,
        languages=list(languages or []),
        projects=list(projects or []),
    )
    return await PublishCommand(context, options).execute()


async def handle_publish_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
    dry_run: bool = False,
    yes: bool = False,
    continue_on_error: bool = False,
    json_output: bool = False,
    languages: list[str] | None = None,
    projects: list[str] | None = None,
    env: dict[str, str] | None = None,
) -> None:
    """Handle the publish command from the CLI with plan and confirmation."""
    options = UpdateOptions(
        continue_on_error=continue_on_error,
        languages=list(languages or []),
        projects=list(projects or []),
    )
    await handle_orchestration(
        workspace,
        PublishCommand,
        console=console,
        error_console=error_console,
        dry_run=dry_run,
        yes=yes,
        json_output=json_output,
        options=options,
        env=env,
    )
