"""Shell command execution with asynchronous output capture."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from polybump.execution.results import ExecutionResult

if TYPE_CHECKING:
    from polybump.workspace.package import Package

logger = logging.getLogger(__name__)

NO_EXIT_CODE = -1


async def _read_stream(
    stream: asyncio.StreamReader,
    callback: Callable[[str], None] | None,
    buffer: list[str],
) -> None:
    """Read from stream line by line."""
    while True:
        line = await stream.readline()
        if not line:
            break
        decoded = line.decode("utf-8", errors="replace")
        buffer.append(decoded)
        if callback:
            callback(decoded.rstrip())


async def run_command(
    command: str,
    cwd: Path,
    *,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    on_stdout: Callable[[str], None] | None = None,
    on_stderr: Callable[[str], None] | None = None,
) -> tuple[int, str, str, int]:
    """Run a shell command asynchronously.

    Args:
        command: Shell command to execute.
        cwd: Working directory.
        env: Environment variables (merged with current env).
        timeout: Timeout in seconds.
        on_stdout: Callback for stdout lines.
        on_stderr: Callback for stderr lines.

    Returns:
        Tuple of (exit_code, stdout, stderr, duration_ms). A timeout or a
        process that cannot be started yields exit code -1.
    """
    run_env = os.environ.copy()
    if env:
        run_env.update(env)

    start_time = time.monotonic()
    logger.debug("Running %r in %s", command, cwd)

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=run_env,
        )
    except OSError as e:
        duration_ms = int((time.monotonic() - start_time) * 1000)
        return NO_EXIT_CODE, "", str(e), duration_ms

    if process.stdout is None or process.stderr is None:
        raise RuntimeError("Process stdout/stderr is None")

    stdout_buffer: list[str] = []
    stderr_buffer: list[str] = []

    try:
        await asyncio.wait_for(
            asyncio.gather(
                _read_stream(process.stdout, on_stdout, stdout_buffer),
                _read_stream(process.stderr, on_stderr, stderr_buffer),
                process.wait(),
            ),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, TimeoutError):
        process.kill()
        await process.wait()
        duration_ms = int((time.monotonic() - start_time) * 1000)
        timed_out = f"Command timed out after {timeout}s"
        return NO_EXIT_CODE, "".join(stdout_buffer), timed_out, duration_ms

    duration_ms = int((time.monotonic() - start_time) * 1000)
    return process.returncode or 0, "".join(stdout_buffer), "".join(stderr_buffer), duration_ms


_PLACEHOLDER = re.compile(r"\{(name|version|path)\}")


def expand_command(template: str, package: Package, version: str) -> str:
    """Substitute ``{name}``, ``{version}`` and ``{path}``; any other text is kept as written."""
    values = {"name": package.name or "", "version": version, "path": str(package.path)}
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], template)


async def run_in_package(
    package: Package,
    command: str,
    *,
    version: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    on_stdout: Callable[[str], None] | None = None,
    on_stderr: Callable[[str], None] | None = None,
) -> ExecutionResult:
    """Run a command in a package directory.

    Args:
        package: Package to run command in.
        command: Shell command to execute (placeholders already expanded).
        version: Version exported to the command; defaults to the package's.
        env: Additional environment variables.
        timeout: Timeout in seconds.
        on_stdout: Callback for stdout lines.
        on_stderr: Callback for stderr lines.

    Returns:
        Execution result.
    """
    run_env = env.copy() if env else {}
    run_env["POLYBUMP_PACKAGE_ID"] = package.id
    run_env["POLYBUMP_PACKAGE_NAME"] = package.name or ""
    run_env["POLYBUMP_PACKAGE_PATH"] = str(package.path)
    run_env["POLYBUMP_PACKAGE_VERSION"] = version or package.version or ""

    exit_code, stdout, stderr, duration_ms = await run_command(
        command,
        cwd=package.path,
        env=run_env,
        timeout=timeout,
        on_stdout=on_stdout,
        on_stderr=on_stderr,
    )
    return ExecutionResult.from_exit(package.id, command, exit_code, stdout, stderr, duration_ms)
