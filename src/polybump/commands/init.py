"""Init command implementation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from polybump.changesets import ChangesetStore
from polybump.config import STATE_DIR, config_path
from polybump.errors import ConfigurationError, PolybumpError
from polybump.templates import CONFIG_YAML_TEMPLATE


@dataclass
class InitResult:
    """Result of init command."""

    root: Path
    config_file: Path
    changesets_dir: Path


def init_workspace(path: Path, base_branch: str = "main") -> InitResult:
    """Create ``.polybump/`` with a default configuration and an empty store.

    Args:
        path: Directory that becomes the workspace root.
        base_branch: Branch written to the configuration.

    Returns:
        Paths of what was created.

    Raises:
        ConfigurationError: If a configuration already exists.
    """
    path = path.resolve()
    if not path.exists():
        path.mkdir(parents=True)

    config_file = config_path(path)
    if config_file.exists():
        raise ConfigurationError("Workspace already initialized", path=config_file)

    (path / STATE_DIR).mkdir(exist_ok=True)
    config_file.write_text(CONFIG_YAML_TEMPLATE.format(base_branch=base_branch), encoding="utf-8")

    store = ChangesetStore(path)
    store.init()
    (store.directory / ".gitkeep").touch()

    return InitResult(root=path, config_file=config_file, changesets_dir=store.directory)


def handle_init(
    cwd: Path,
    *,
    console: Console,
    error_console: Console,
    base_branch: str = "main",
) -> None:
    """Handle init command."""
    try:
        result = init_workspace(cwd, base_branch=base_branch)
    except PolybumpError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    console.print("[green]Workspace initialized![/green]")
    console.print("Created:")
    console.print(f"  - {result.config_file.relative_to(result.root).as_posix()}")
    console.print(f"  - {result.changesets_dir.relative_to(result.root).as_posix()}/")
    console.print("Run [bold]polybump add[/bold] to record your first changeset.")
