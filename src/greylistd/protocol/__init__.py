"""Command protocol: request parsing and response rendering."""
from greylistd.protocol.commands import (
    COMMAND_NAMES,
    AddCommand,
    CheckCommand,
    ClearCommand,
    Command,
    DeleteCommand,
    ListCommand,
    MrtgCommand,
    ReloadCommand,
    SaveCommand,
    StatsCommand,
    StatusCommand,
    UpdateCommand,
    parse_command,
    split_flags,
)
from greylistd.protocol.render import INVALID_COMMAND

__all__ = [
    "COMMAND_NAMES",
    "AddCommand",
    "CheckCommand",
    "ClearCommand",
    "Command",
    "DeleteCommand",
    "ListCommand",
    "MrtgCommand",
    "ReloadCommand",
    "SaveCommand",
    "StatsCommand",
    "StatusCommand",
    "UpdateCommand",
    "parse_command",
    "split_flags",
    "INVALID_COMMAND",
]
