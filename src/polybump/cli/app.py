"""polybump CLI application."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from polybump.errors import PolybumpError
from polybump.workspace import Workspace
from polybump.workspace.package import PackageKind


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from polybump import __version__

        print(f"polybump {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=verbose)],
        force=True,
    )


app = typer.Typer(
    name="polybump",
    help="Changeset-driven versioning for polyglot monorepos",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def _app_callback(
    version: Annotated[  # noqa: ARG001
        bool,
        typer.Option("--version", "-V", help="Show version and exit", callback=version_callback),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Changeset-driven versioning for polyglot monorepos."""
    configure_logging(verbose)


class OutputFormat(str, Enum):
    STDOUT = "stdout"
    JSON = "json"


console = Console()
error_console = Console(stderr=True)


def get_workspace(path: Path | None = None) -> Workspace:
    """Load workspace from current directory or specified path."""
    try:
        return Workspace.discover(path)
    except PolybumpError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e


def parse_env(pairs: list[str]) -> dict[str, str]:
    """Turn repeated ``KEY=VALUE`` options into a mapping."""
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            error_console.print(f"[red]Error:[/red] Expected KEY=VALUE, got '{pair}'")
            raise typer.Exit(1)
        env[key] = value
    return env


@app.command()
def init(
    path: Annotated[
        Path | None,
        typer.Argument(help="Directory to initialize"),
    ] = None,
    base_branch: Annotated[
        str,
        typer.Option("--base-branch", help="Branch that check compares against"),
    ] = "main",
) -> None:
    """Initialize a new polybump workspace."""
    from polybump.commands import handle_init

    handle_init(
        path or Path.cwd(),
        console=console,
        error_console=error_console,
        base_branch=base_branch,
    )


@app.command()
def add(
    package: Annotated[
        list[str] | None,
        typer.Option("--package", "-p", help="Package id or name (repeatable)"),
    ] = None,
    bump: Annotated[
        str | None,
        typer.Option("--bump", "-b", help="Bump type (patch, minor, major)"),
    ] = None,
    message: Annotated[
        str | None,
        typer.Option("--message", "-m", help="Changelog summary"),
    ] = None,
) -> None:
    """Record a changeset for one or more packages."""
    from polybump.commands import handle_add_command

    workspace = get_workspace()
    handle_add_command(
        workspace,
        console=console,
        error_console=error_console,
        packages=package,
        bump=bump,
        summary=message,
    )


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    kind: Annotated[
        PackageKind | None,
        typer.Option("--filter", help="Only list workspace roots or only plain packages"),
    ] = None,
) -> None:
    """Show packages, pending updates and changed packages without a changeset."""
    from polybump.commands import handle_check_command

    workspace = get_workspace()
    handle_check_command(
        workspace,
        console=console,
        error_console=error_console,
        json_output=json_output,
        kind=kind,
    )


@app.command("config")
def config_command() -> None:
    """Print the effective workspace configuration as JSON."""
    from polybump.commands import handle_config_command

    handle_config_command(None, console=console, error_console=error_console)


@app.command()
def update(
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would change"),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation"),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Result format"),
    ] = OutputFormat.STDOUT,
) -> None:
    """Apply pending changesets: versions, constraints and changelogs."""
    from polybump.commands import handle_update_command

    workspace = get_workspace()
    asyncio.run(
        handle_update_command(
            workspace,
            console=console,
            error_console=error_console,
            dry_run=dry_run,
            yes=yes,
            json_output=output_format is OutputFormat.JSON,
        )
    )


@app.command()
def publish(
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would change and be published"),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation"),
    ] = False,
    continue_on_error: Annotated[
        bool,
        typer.Option("--continue-on-error", help="Keep going after a failed publish"),
    ] = False,
    language: Annotated[
        list[str] | None,
        typer.Option("--language", "-l", help="Only publish this ecosystem (repeatable)"),
    ] = None,
    project: Annotated[
        list[str] | None,
        typer.Option("--project", "-p", help="Only publish this package id (repeatable)"),
    ] = None,
    env: Annotated[
        list[str] | None,
        typer.Option("--env", "-e", help="KEY=VALUE passed to publish commands (repeatable)"),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Result format"),
    ] = OutputFormat.STDOUT,
) -> None:
    """Update, then run each package's publish command in dependency order."""
    from polybump.commands import handle_publish_command

    workspace = get_workspace()
    asyncio.run(
        handle_publish_command(
            workspace,
            console=console,
            error_console=error_console,
            dry_run=dry_run,
            yes=yes,
            continue_on_error=continue_on_error,
            json_output=output_format is OutputFormat.JSON,
            languages=language,
            projects=project,
            env=parse_env(env or []),
        )
    )


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
