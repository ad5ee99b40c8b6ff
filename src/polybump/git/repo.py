"""Git repository helpers."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from polybump.errors import GitError

logger = logging.getLogger(__name__)


def run_git_command(
    args: list[str],
    cwd: Path | None = None,
    *,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a git command synchronously.

    Args:
        args: Git command arguments (without 'git').
        cwd: Working directory.
        check: Raise on non-zero exit code.

    Returns:
        Completed process result.

    Raises:
        GitError: If git is missing, or the command fails and check is True.
    """
    cmd = ["git", *args]
    logger.debug("Running %s", " ".join(cmd))

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("Git is not installed") from e

    if check and result.returncode != 0:
        raise GitError(
            result.stderr.strip() or f"Command failed with exit code {result.returncode}",
            command=" ".join(cmd),
        )
    return result


def is_git_repo(path: Path) -> bool:
    """Check if path is inside a git work tree."""
    try:
        result = run_git_command(["rev-parse", "--is-inside-work-tree"], cwd=path, check=False)
    except GitError:
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def ref_exists(ref: str, cwd: Path | None = None) -> bool:
    """Check if a ref (branch, tag, sha) resolves to a commit."""
    result = run_git_command(
        ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
        cwd=cwd,
        check=False,
    )
    return result.returncode == 0


def resolve_base_ref(base_branch: str, cwd: Path | None = None) -> str:
    """Pick the local base branch, falling back to its ``origin/`` counterpart.

    Raises:
        GitError: If neither exists.
    """
    for candidate in (base_branch, f"origin/{base_branch}"):
        if ref_exists(candidate, cwd):
            return candidate
    raise GitError(f"Base branch '{base_branch}' not found")


def get_current_branch(cwd: Path | None = None) -> str:
    """Get the current git branch name."""
    result = run_git_command(["rev-parse", "--abbrev-ref", "HEAD"], cwd=cwd)
    return result.stdout.strip()
