"""Git integration (status reporting only)."""

from polybump.git.diff import get_changed_files_since
from polybump.git.repo import (
    get_current_branch,
    is_git_repo,
    ref_exists,
    resolve_base_ref,
    run_git_command,
)

__all__ = [
    "get_changed_files_since",
    "get_current_branch",
    "is_git_repo",
    "ref_exists",
    "resolve_base_ref",
    "run_git_command",
]
