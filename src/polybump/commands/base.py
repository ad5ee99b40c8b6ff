"""Base command infrastructure."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from polybump.changesets import ChangesetStore
from polybump.workspace import Workspace

TResult = TypeVar("TResult")


@dataclass
class CommandContext:
    """Context passed to all commands.

    Attributes:
        workspace: The workspace instance.
        dry_run: If True, compute the plan without making changes.
        env: Extra environment variables for publish commands.
    """

    workspace: Workspace
    dry_run: bool = False
    env: dict[str, str] = field(default_factory=dict)

    @property
    def store(self) -> ChangesetStore:
        return ChangesetStore(self.workspace.root)


class _BaseCommand:
    def __init__(self, context: CommandContext) -> None:
        self.context = context
        self.workspace = context.workspace

    @property
    def store(self) -> ChangesetStore:
        return self.context.store

    def validate(self) -> list[str]:
        """Problems that prevent the command from running (empty if none)."""
        return []


class Command(_BaseCommand, ABC, Generic[TResult]):
    """A polybump operation that runs subprocesses and is therefore async."""

    @abstractmethod
    async def execute(self) -> TResult: ...


class SyncCommand(_BaseCommand, ABC, Generic[TResult]):
    """A polybump operation that only reads and writes workspace files."""

    @abstractmethod
    def execute(self) -> TResult: ...
