"""Tests for locating and loading .polybump/config.yaml."""

from __future__ import annotations

from pathlib import Path

import pytest

from polybump.config import config_path, find_workspace_root, load_config
from polybump.errors import ConfigurationError, WorkspaceNotFoundError


class TestFindWorkspaceRoot:
    """Tests for find_workspace_root."""

    def test_from_root(self, workspace_dir: Path) -> None:
        assert find_workspace_root(workspace_dir) == workspace_dir

    def test_from_nested_directory(self, workspace_dir: Path) -> None:
        nested = workspace_dir / "packages" / "pkg-a"
        assert find_workspace_root(nested) == workspace_dir

    def test_not_found(self, temp_dir: Path) -> None:
        with pytest.raises(WorkspaceNotFoundError, match="polybump init"):
            find_workspace_root(temp_dir)

    def test_defaults_to_cwd(self, workspace_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(workspace_dir / "crates")
        assert find_workspace_root() == workspace_dir


class TestLoadConfig:
    """Tests for load_config."""

    def test_load(self, workspace_dir: Path) -> None:
        config = load_config(workspace_dir)
        assert config.ignore == ["examples/**"]
        assert config.publish == {"node": "echo publishing {name}@{version}"}

    def test_missing_file_defaults(self, temp_dir: Path) -> None:
        (temp_dir / ".polybump").mkdir()
        assert load_config(temp_dir).base_branch == "main"

    def test_empty_file_defaults(self, temp_dir: Path) -> None:
        (temp_dir / ".polybump").mkdir()
        config_path(temp_dir).write_text("")
        assert load_config(temp_dir).ignore == []

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        (temp_dir / ".polybump").mkdir()
        config_path(temp_dir).write_text("ignore: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(temp_dir)

    def test_not_a_mapping(self, temp_dir: Path) -> None:
        (temp_dir / ".polybump").mkdir()
        config_path(temp_dir).write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(temp_dir)

    def test_validation_error_names_field(self, temp_dir: Path) -> None:
        (temp_dir / ".polybump").mkdir()
        config_path(temp_dir).write_text("changelog:\n  enabled: maybe\n")
        with pytest.raises(ConfigurationError, match=r"changelog\.enabled"):
            load_config(temp_dir)
