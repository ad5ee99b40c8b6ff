"""External command execution (publish commands)."""

from polybump.execution.results import ExecutionResult, ExecutionStatus
from polybump.execution.runner import expand_command, run_command, run_in_package

__all__ = [
    "ExecutionResult",
    "ExecutionStatus",
    "expand_command",
    "run_command",
    "run_in_package",
]
