"""polybump exception hierarchy.

Every error carries a human readable ``message`` and, where it applies, the
package id or path it is about so the CLI can point at the offending file.
"""

from __future__ import annotations

from pathlib import Path


class PolybumpError(Exception):
    """Base class for all polybump errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(PolybumpError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class WorkspaceNotFoundError(PolybumpError):
    """No initialized polybump workspace could be located."""

    def __init__(self, search_path: Path) -> None:
        self.search_path = search_path
        super().__init__(
            f"No polybump workspace found in {search_path} or its parents. "
            "Run 'polybump init' first."
        )


class PackageNotFoundError(PolybumpError):
    """A package was requested that is not part of the workspace."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available or []
        message = f"Package '{name}' not found"
        if self.available:
            message += f". Available: {', '.join(sorted(self.available))}"
        super().__init__(message)


class ManifestParseError(PolybumpError):
    """A manifest file could not be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot parse manifest {path}: {reason}")


class ManifestWriteError(PolybumpError):
    """A manifest file could not be written."""

    def __init__(self, path: Path, reason: str, package_id: str | None = None) -> None:
        self.path = path
        self.reason = reason
        self.package_id = package_id
        super().__init__(f"Cannot write manifest {path}: {reason}")


class DiscoveryError(PolybumpError):
    """A discovered manifest had to be skipped."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Skipping {path}: {reason}")


class GraphCycleError(PolybumpError):
    """Workspace-internal dependencies form a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class VersionParseError(PolybumpError):
    """A version string does not match its ecosystem grammar."""

    def __init__(self, version: str | None, package: str | None = None) -> None:
        self.version = version
        self.package = package
        message = f"Invalid version '{version}'"
        if package:
            message += f" in {package}"
        super().__init__(message)


class ChangesetError(PolybumpError):
    """A changeset record is malformed or missing."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path:
            message = f"{message} ({path})"
        super().__init__(message)


class PublishCommandError(PolybumpError):
    """An external publish command failed."""

    def __init__(
        self,
        package_id: str,
        command: str,
        exit_code: int,
        stderr: str = "",
    ) -> None:
        self.package_id = package_id
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"Publish command for {package_id} failed (exit {exit_code}): {command}"
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message)


class GitError(PolybumpError):
    """A git command failed."""

    def __init__(self, message: str, command: str | None = None) -> None:
        self.command = command
        if command:
            message = f"{message} (command: {command})"
        super().__init__(message)


class ChangesetReferenceWarning(UserWarning):
    """A changeset names a package that is not part of the workspace."""

    def __init__(self, changeset_id: str, package: str) -> None:
        self.changeset_id = changeset_id
        self.package = package
        super().__init__(f"Changeset {changeset_id} references unknown package '{package}'")
