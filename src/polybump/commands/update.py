"""Update command implementation."""

from __future__ import annotations

import json
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from polybump.commands.base import Command, CommandContext
from polybump.errors import PolybumpError
from polybump.filters.scope import scope_matcher
from polybump.orchestrator import (
    OrchestrationMode,
    OrchestrationResult,
    PackagePlan,
    PublishOrchestrator,
)
from polybump.versioning.update_map import generate_update_map

if TYPE_CHECKING:
    from polybump.workspace.workspace import Workspace


@dataclass
class UpdateOptions:
    """Options for update and publish commands.

    Attributes:
        continue_on_error: Keep going after a failed publish command.
        cancel_event: Set to stop before the next package.
        languages: Only publish packages of these ecosystems.
        projects: Only publish packages with these ids.
    """

    continue_on_error: bool = False
    cancel_event: threading.Event | None = None
    languages: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)


class UpdateCommand(Command[OrchestrationResult]):
    """Write new versions, fix constraints, prepend changelogs, consume changesets."""

    mode = OrchestrationMode.UPDATE

    def __init__(self, context: CommandContext, options: UpdateOptions | None = None) -> None:
        super().__init__(context)
        self.options = options or UpdateOptions()

    def build_orchestrator(self) -> PublishOrchestrator:
        """Compute the update map and wrap it in an orchestrator."""
        store = self.store
        graph = self.workspace.graph
        update_map = generate_update_map(graph, store.list())

        config = self.workspace.config
        if self.options.continue_on_error and not config.continue_on_error:
            config = config.model_copy(update={"continue_on_error": True})

        mode = OrchestrationMode.DRY_RUN if self.context.dry_run else self.mode
        return PublishOrchestrator(
            graph,
            update_map,
            config,
            store,
            mode,
            include_publish=self.mode is OrchestrationMode.PUBLISH,
            publish_filter=scope_matcher(self.options.languages, self.options.projects),
            env=self.context.env,
            cancel_event=self.options.cancel_event,
        )

    async def execute(self) -> OrchestrationResult:
        """Execute the update."""
        return await self.build_orchestrator().run()


async def update(
    workspace: Workspace,
    *,
    dry_run: bool = False,
    continue_on_error: bool = False,
    cancel_event: threading.Event | None = None,
) -> OrchestrationResult:
    """Convenience function to apply pending changesets.

    Args:
        workspace: Workspace to update.
        dry_run: Only compute the plan.
        continue_on_error: Keep going after a failed package.
        cancel_event: Set to stop before the next package.

    Returns:
        Orchestration result.
    """
    context = CommandContext(workspace=workspace, dry_run=dry_run)
    options = UpdateOptions(continue_on_error=continue_on_error, cancel_event=cancel_event)
    return await UpdateCommand(context, options).execute()


def render_plan_table(plan: list[PackagePlan]) -> Table:
    """Build the plan table shown before confirmation."""
    show_publish = any(p.publish_command for p in plan)
    table = Table()
    table.add_column("Package", style="cyan")
    table.add_column("Current", style="dim")
    table.add_column("Next", style="green")
    table.add_column("Bump", style="magenta")
    table.add_column("Constraint updates")
    if show_publish:
        table.add_column("Publish")

    for p in plan:
        rewrites = "\n".join(f"{r.dependency_name}: {r.old} -> {r.new}" for r in p.rewrites)
        row = [
            p.package.id,
            p.package.version or "-",
            p.version or "-",
            p.action,
            escape(rewrites) or "-",
        ]
        if show_publish:
            row.append(escape(p.publish_command or "-"))
        table.add_row(*row)
    return table


def latest_summary(workspace: Workspace, result: OrchestrationResult) -> dict[str, str] | None:
    """Id and resulting version of the configured ``latest_package``."""
    package_id = workspace.config.latest_package
    if not package_id or package_id not in workspace.graph.packages:
        return None
    version = workspace.graph.get_package(package_id).version
    for p in result.plan:
        if p.package.id == package_id:
            version = p.version
    return {"id": package_id, "version": version or ""}


def report_result(result: OrchestrationResult, console: Console, error_console: Console) -> None:
    """Print the outcome of a run; exits 1 unless everything succeeded."""
    verb = "Published" if result.mode is OrchestrationMode.PUBLISH else "Updated"
    if result.succeeded:
        console.print(f"\n[green]{verb} {len(result.succeeded)} packages[/green]")
    for package_id, error in result.failed.items():
        error_console.print(f"[red]✗[/red] {escape(package_id)}: {escape(error.message)}")
    if result.mode is OrchestrationMode.PUBLISH and result.failed:
        error_console.print("Run [bold]polybump publish[/bold] again to retry failed publishes.")
    if result.cancelled:
        error_console.print("[yellow]Cancelled.[/yellow]")
    if result.unreached:
        error_console.print(f"[yellow]Not processed:[/yellow] {', '.join(result.unreached)}")
    if not result.success:
        raise typer.Exit(1)


@contextmanager
def cancel_on_interrupt() -> Iterator[threading.Event]:
    """Turn the first Ctrl-C into a cancel request instead of an abort."""
    event = threading.Event()
    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: object) -> None:
        if event.is_set():
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # not on the main thread
        yield event
        return
    try:
        yield event
    finally:
        signal.signal(signal.SIGINT, previous)


async def handle_update_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
    dry_run: bool = False,
    yes: bool = False,
    json_output: bool = False,
) -> None:
    """Handle the update command from the CLI with plan and confirmation."""
    await handle_orchestration(
        workspace,
        UpdateCommand,
        console=console,
        error_console=error_console,
        dry_run=dry_run,
        yes=yes,
        json_output=json_output,
    )


def _print_json(
    console: Console, workspace: Workspace, result: OrchestrationResult, dry_run: bool
) -> None:
    data = result.to_dict()
    data["dry_run"] = dry_run
    data["latest"] = latest_summary(workspace, result)
    console.print_json(json.dumps(data))


async def handle_orchestration(
    workspace: Workspace,
    command_class: type[UpdateCommand],
    *,
    console: Console,
    error_console: Console,
    dry_run: bool = False,
    yes: bool = False,
    continue_on_error: bool = False,
    json_output: bool = False,
    options: UpdateOptions | None = None,
    env: dict[str, str] | None = None,
) -> None:
    """Plan, confirm and run an update or publish.

    With ``json_output`` the plan table is not shown, the confirmation prompt
    goes to stderr and the result (or, for a dry run, the plan) is printed as
    JSON on stdout.
    """
    options = options or UpdateOptions()
    options.continue_on_error = options.continue_on_error or continue_on_error
    try:
        # 1. Generate plan (forced dry run)
        env = dict(env or {})
        planner = command_class(CommandContext(workspace, dry_run=True, env=env), options)
        errors = planner.validate()
        if errors:
            for error in errors:
                error_console.print(f"[red]Error:[/red] {escape(error)}")
            raise typer.Exit(1)
        plan = await planner.execute()

        if not plan.plan or dry_run:
            if json_output:
                _print_json(console, workspace, plan, dry_run=dry_run)
                return
            if not plan.plan:
                console.print("[yellow]No packages to update[/yellow]")
                return

        if not json_output:
            if dry_run:
                console.print("[yellow]Dry run - no changes will be made[/yellow]\n")
            console.print("[bold]Pending updates:[/bold]")
            console.print(render_plan_table(plan.plan))

        if dry_run:
            return

        # 2. Confirmation
        if not yes and not typer.confirm(
            "\nProceed with these updates?", default=False, err=json_output
        ):
            (error_console if json_output else console).print("[yellow]Update cancelled.[/yellow]")
            return

        # 3. Execution
        with cancel_on_interrupt() as cancel_event:
            options.cancel_event = cancel_event
            runner = command_class(CommandContext(workspace, env=env), options)
            result = await runner.execute()

        if json_output:
            _print_json(console, workspace, result, dry_run=False)
            if not result.success:
                raise typer.Exit(1)
            return

        report_result(result, console, error_console)
        latest = latest_summary(workspace, result)
        if latest is not None and result.success:
            console.print(f"Workspace version: [bold]{latest['version']}[/bold] ({latest['id']})")

    except typer.Exit:
        raise
    except PolybumpError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e
