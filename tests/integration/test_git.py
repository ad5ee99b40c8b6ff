"""Integration tests for git modules.

Runs changed-file detection and ``check`` against a real git repository.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from polybump.commands.check import check
from polybump.git import get_changed_files_since, is_git_repo, resolve_base_ref
from polybump.workspace import Workspace


def run_git(args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    """Run a git command."""
    return subprocess.run(
        ["git"] + args,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )


@pytest.fixture
def feature_branch(git_workspace: Path) -> Path:
    """Workspace on a feature branch with one committed change to pkg-a."""
    run_git(["checkout", "-q", "-b", "feature"], git_workspace)
    (git_workspace / "packages" / "pkg-a" / "index.js").write_text("module.exports = 1;\n")
    run_git(["add", "-A"], git_workspace)
    run_git(["commit", "-q", "-m", "change pkg-a"], git_workspace)
    return git_workspace


class TestGitRepo:
    """Tests for git/repo.py functions."""

    def test_is_git_repo_true(self, git_workspace: Path) -> None:
        """is_git_repo returns True for git repository."""
        assert is_git_repo(git_workspace) is True

    def test_is_git_repo_false(self, temp_dir: Path) -> None:
        """is_git_repo returns False outside a repository."""
        assert is_git_repo(temp_dir) is False

    def test_resolve_base_ref(self, git_workspace: Path) -> None:
        assert resolve_base_ref("main", git_workspace) == "main"


class TestChangedFiles:
    """Tests for git/diff.py functions."""

    def test_committed_change(self, feature_branch: Path) -> None:
        """Commits since the merge base are reported."""
        assert get_changed_files_since(feature_branch, "main") == ["packages/pkg-a/index.js"]

    def test_uncommitted_and_untracked(self, feature_branch: Path) -> None:
        """Working-tree edits and new files count too."""
        (feature_branch / "crates" / "engine" / "Cargo.toml").write_text(
            '[package]\nname = "engine"\nversion = "0.1.0"\nedition = "2024"\n'
        )
        (feature_branch / "python" / "core" / "new.py").write_text("x = 1\n")

        files = get_changed_files_since(feature_branch, "main")

        assert files == [
            "crates/engine/Cargo.toml",
            "packages/pkg-a/index.js",
            "python/core/new.py",
        ]

    def test_paths_relative_to_subdirectory_root(self, feature_branch: Path) -> None:
        """Paths are relative to the workspace root, not the repository root."""
        assert get_changed_files_since(feature_branch / "packages", "main") == ["pkg-a/index.js"]


class TestCheck:
    """check against a real repository."""

    def test_missing_changeset_reported(self, feature_branch: Path) -> None:
        result = check(Workspace.discover(feature_branch))

        assert [p.id for p in result.missing_changesets] == ["packages/pkg-a/package.json"]
        assert result.warnings == []

    def test_changeset_covers_change(self, feature_branch: Path) -> None:
        from polybump.changesets import ChangesetStore
        from polybump.versioning.semver import BumpType

        ChangesetStore(feature_branch).create(["pkg-a"], BumpType.PATCH, "Export a value")

        result = check(Workspace.discover(feature_branch))

        assert result.missing_changesets == []

    def test_unknown_base_branch_warns(self, feature_branch: Path) -> None:
        result = check(Workspace.discover(feature_branch), base_branch="release")

        assert result.warnings == ["Base branch 'release' not found"]
