"""Config command implementation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from polybump.config import PolybumpConfig, config_path, find_workspace_root, load_config
from polybump.errors import PolybumpError


@dataclass
class ConfigResult:
    """Effective configuration of a workspace, defaults filled in."""

    root: Path
    config_file: Path
    config: PolybumpConfig

    def to_dict(self) -> dict[str, Any]:
        return self.config.model_dump(mode="json", by_alias=True)


def show_config(start: Path | None = None) -> ConfigResult:
    """Locate the workspace from ``start`` and load its configuration.

    Packages are not discovered, so this works even when the graph is broken.
    """
    root = find_workspace_root(start)
    return ConfigResult(root=root, config_file=config_path(root), config=load_config(root))


def handle_config_command(
    start: Path | None,
    *,
    console: Console,
    error_console: Console,
) -> None:
    """Print the effective configuration as JSON."""
    try:
        result = show_config(start)
    except PolybumpError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e

    console.print_json(json.dumps(result.to_dict()))
