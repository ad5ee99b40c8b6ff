"""polybump commands."""

from polybump.commands.add import (
    AddChangesetCommand,
    AddChangesetOptions,
    AddChangesetResult,
    add_changeset,
    handle_add_command,
)
from polybump.commands.base import Command, CommandContext, SyncCommand
from polybump.commands.check import (
    CheckCommand,
    CheckOptions,
    CheckResult,
    check,
    handle_check_command,
)
from polybump.commands.config import ConfigResult, handle_config_command, show_config
from polybump.commands.init import InitResult, handle_init, init_workspace
from polybump.commands.publish import PublishCommand, handle_publish_command, publish
from polybump.commands.update import (
    UpdateCommand,
    UpdateOptions,
    handle_update_command,
    update,
)

__all__ = [
    # Base
    "Command",
    "CommandContext",
    "SyncCommand",
    # Add
    "AddChangesetCommand",
    "AddChangesetOptions",
    "AddChangesetResult",
    "add_changeset",
    "handle_add_command",
    # Check
    "CheckCommand",
    "CheckOptions",
    "CheckResult",
    "check",
    "handle_check_command",
    # Config
    "ConfigResult",
    "handle_config_command",
    "show_config",
    # Init
    "InitResult",
    "handle_init",
    "init_workspace",
    # Update / publish
    "PublishCommand",
    "UpdateCommand",
    "UpdateOptions",
    "handle_publish_command",
    "handle_update_command",
    "publish",
    "update",
]
