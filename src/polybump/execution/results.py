"""Result types for external command execution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExecutionStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one command run in a package directory.

    Attributes:
        package_id: Id of the package the command ran for.
        command: The expanded shell command.
        status: Success or failure.
        exit_code: Process exit code (-1 when it never finished).
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration_ms: Wall time in milliseconds.
    """

    package_id: str
    command: str
    status: ExecutionStatus
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS

    @classmethod
    def from_exit(
        cls,
        package_id: str,
        command: str,
        exit_code: int,
        stdout: str,
        stderr: str,
        duration_ms: int,
    ) -> ExecutionResult:
        if exit_code == 0:
            status = ExecutionStatus.SUCCESS
        else:
            status = ExecutionStatus.FAILURE
        return cls(package_id, command, status, exit_code, stdout, stderr, duration_ms)
