"""Test check command."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from polybump.changesets import ChangesetStore
from polybump.commands.check import CheckCommand, CheckOptions, check, handle_check_command
from polybump.commands.base import CommandContext
from polybump.errors import GitError
from polybump.versioning.semver import BumpType
from polybump.workspace import Workspace
from polybump.workspace.package import PackageKind


@pytest.fixture
def workspace(workspace_dir: Path) -> Workspace:
    return Workspace.discover(workspace_dir)


def test_check_without_git(workspace):
    result = check(workspace)

    assert [p.id for p in result.packages] == [
        "crates/engine/Cargo.toml",
        "packages/pkg-a/package.json",
        "packages/pkg-b/package.json",
        "python/core/pyproject.toml",
    ]
    assert [(e.dependent, e.dependency) for e in result.edges] == [
        ("packages/pkg-b/package.json", "packages/pkg-a/package.json")
    ]
    assert result.update_map.is_empty
    assert result.changed_files == []
    assert result.warnings == ["Not a git repository; skipping changed-file detection"]


def test_check_pending_updates(workspace):
    ChangesetStore(workspace.root).create(["pkg-a"], BumpType.MAJOR, "Breaking")

    with patch("polybump.commands.check.is_git_repo", return_value=False):
        result = check(workspace)

    assert [(u.package_id, u.next_version) for u in result.update_map] == [
        ("packages/pkg-a/package.json", "2.0.0"),
        ("packages/pkg-b/package.json", "2.0.0"),
    ]


def test_check_reports_unknown_reference(workspace):
    ChangesetStore(workspace.root).create(["ghost"], BumpType.PATCH, "Fix")

    with patch("polybump.commands.check.is_git_repo", return_value=False):
        result = check(workspace)

    assert any("unknown package 'ghost'" in w for w in result.warnings)


def test_check_missing_changesets(workspace):
    with (
        patch("polybump.commands.check.is_git_repo", return_value=True),
        patch("polybump.commands.check.resolve_base_ref", return_value="main"),
        patch(
            "polybump.commands.check.get_changed_files_since",
            return_value=["packages/pkg-a/index.js", "python/core/src/core.py", "README.md"],
        ) as mock_changed,
    ):
        result = check(workspace)

    mock_changed.assert_called_once_with(workspace.root, "main")
    assert [p.id for p in result.missing_changesets] == [
        "packages/pkg-a/package.json",
        "python/core/pyproject.toml",
    ]


def test_check_base_branch_override(workspace):
    context = CommandContext(workspace=workspace)
    with (
        patch("polybump.commands.check.is_git_repo", return_value=True),
        patch("polybump.commands.check.resolve_base_ref", return_value="origin/develop") as resolve,
        patch("polybump.commands.check.get_changed_files_since", return_value=[]),
    ):
        CheckCommand(context, CheckOptions(base_branch="develop")).execute()

    assert resolve.call_args[0][0] == "develop"


def test_check_git_error_becomes_warning(workspace):
    with (
        patch("polybump.commands.check.is_git_repo", return_value=True),
        patch(
            "polybump.commands.check.resolve_base_ref",
            side_effect=GitError("Base branch 'main' not found"),
        ),
    ):
        result = check(workspace)

    assert result.warnings == ["Base branch 'main' not found"]
    assert result.missing_changesets == []


def test_check_discovery_errors_are_warnings(workspace_dir):
    (workspace_dir / "packages" / "pkg-a" / "package.json").write_text("{broken")
    workspace = Workspace.discover(workspace_dir)

    result = check(workspace)

    assert "Skipping packages/pkg-a/package.json" in result.warnings[0]


def test_check_kind_filter(workspace_dir):
    (workspace_dir / "package.json").write_text('{"private": true, "workspaces": ["packages/*"]}')
    workspace = Workspace.discover(workspace_dir)

    with patch("polybump.commands.check.is_git_repo", return_value=False):
        roots = check(workspace, kind=PackageKind.WORKSPACE)
        plain = check(workspace, kind=PackageKind.PACKAGE)

    assert [p.id for p in roots.packages] == ["package.json"]
    assert "package.json" not in [p.id for p in plain.packages]
    assert len(plain.packages) == 4


def test_check_latest_package(workspace_dir):
    config = Workspace.discover(workspace_dir).config
    workspace = Workspace.load(
        workspace_dir, config.model_copy(update={"latest_package": "crates/engine/Cargo.toml"})
    )

    with patch("polybump.commands.check.is_git_repo", return_value=False):
        result = check(workspace)

    assert result.latest.version == "0.1.0"
    assert result.to_dict()["latest"] == {"id": "crates/engine/Cargo.toml", "version": "0.1.0"}


def test_check_unknown_latest_package(workspace_dir):
    config = Workspace.discover(workspace_dir).config
    workspace = Workspace.load(
        workspace_dir, config.model_copy(update={"latest_package": "crates/gone/Cargo.toml"})
    )

    with patch("polybump.commands.check.is_git_repo", return_value=False):
        result = check(workspace)

    assert result.latest is None
    assert "latest_package crates/gone/Cargo.toml is not a discovered package" in result.warnings


class TestHandleCheckCommand:
    """Tests for the CLI handler."""

    def test_json_output(self, workspace):
        console = Console(record=True, width=200)
        ChangesetStore(workspace.root).create(["pkg-a"], BumpType.MINOR, "Feature")

        handle_check_command(
            workspace, console=console, error_console=Console(), json_output=True
        )

        data = json.loads(console.export_text())
        assert [u["next"] for u in data["updates"]] == ["1.1.0", "1.0.1"]
        assert data["updates"][1]["reasons"] == ["dependency packages/pkg-a/package.json"]
        assert data["packages"][0]["ecosystem"] == "rust"
        assert data["edges"][0]["kind"] == "declared"

    def test_table_output(self, workspace):
        console = Console(record=True, width=200)

        handle_check_command(workspace, console=console, error_console=Console())

        output = console.export_text()
        assert "crates/engine/Cargo.toml" in output
        assert "No pending updates" in output
        assert "Warning:" in output

    def test_table_shows_workspace_version(self, workspace_dir):
        config = Workspace.discover(workspace_dir).config
        workspace = Workspace.load(
            workspace_dir,
            config.model_copy(update={"latest_package": "python/core/pyproject.toml"}),
        )
        console = Console(record=True, width=200)

        handle_check_command(workspace, console=console, error_console=Console())

        assert "Workspace version: 0.3.0 (python/core/pyproject.toml)" in console.export_text()
