"""Configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from polybump.config.schema import ChangelogConfig, PolybumpConfig
from polybump.errors import ConfigurationError, WorkspaceNotFoundError

logger = logging.getLogger(__name__)

STATE_DIR = ".polybump"
CONFIG_FILENAME = "config.yaml"


def config_path(root: Path) -> Path:
    return root / STATE_DIR / CONFIG_FILENAME


def find_workspace_root(start: Path | None = None) -> Path:
    """Walk up from ``start`` to the first directory holding ``.polybump/``.

    Args:
        start: Directory to start from. Defaults to the current directory.

    Returns:
        The workspace root.

    Raises:
        WorkspaceNotFoundError: If no ancestor holds a ``.polybump`` directory.
    """
    start = (start or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        if (directory / STATE_DIR).is_dir():
            return directory
    raise WorkspaceNotFoundError(start)


def load_config(root: Path) -> PolybumpConfig:
    """Load ``.polybump/config.yaml`` from a workspace root.

    A missing file yields the defaults; an empty file likewise.

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation.
    """
    path = config_path(root)
    if not path.is_file():
        logger.debug("No config at %s, using defaults", path)
        return PolybumpConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", path=path) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration: {e}", path=path) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a mapping", path=path)

    try:
        return PolybumpConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}", path=path) from e


__all__ = [
    "CONFIG_FILENAME",
    "STATE_DIR",
    "ChangelogConfig",
    "PolybumpConfig",
    "config_path",
    "find_workspace_root",
    "load_config",
]
