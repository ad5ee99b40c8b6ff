"""Changed-file listing."""

from __future__ import annotations

import logging
from pathlib import Path

from polybump.git.repo import run_git_command

logger = logging.getLogger(__name__)


def get_changed_files_since(root: Path, since: str) -> list[str]:
    """Get every file changed relative to a ref.

    Combines four sources so uncommitted work counts too:

    1. commits since the merge base with ``since``
    2. staged changes
    3. unstaged changes
    4. untracked files

    Paths are relative to ``root`` (POSIX form), even when ``root`` is a
    subdirectory of the repository. A source whose git call fails is
    skipped.

    Args:
        root: Workspace root.
        since: Git reference (usually the base branch).

    Returns:
        Sorted, de-duplicated relative paths.

    Raises:
        GitError: If git is not installed.
    """
    queries = [
        ["diff", "--name-only", "--relative", f"{since}...HEAD"],
        ["diff", "--name-only", "--relative", "--cached"],
        ["diff", "--name-only", "--relative"],
        ["ls-files", "--others", "--exclude-standard"],
    ]

    files: set[str] = set()
    for args in queries:
        result = run_git_command(args, cwd=root, check=False)
        if result.returncode == 0:
            files.update(result.stdout.strip().splitlines())
        else:
            logger.debug("git %s failed: %s", " ".join(args), result.stderr.strip())

    return sorted(f for f in files if f)
