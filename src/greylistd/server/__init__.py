"""Socket server: accept thread, single processing lane, command execution.

The dispatcher hands every accepted connection to one processing lane,
which is the only code that touches the registry. No registry lock is
needed because there is only ever one writer.
"""
from greylistd.server.dispatcher import Dispatcher
from greylistd.server.executor import CommandExecutor, Response
from greylistd.server.listener import Listener, bind_listener, systemd_listener

__all__ = [
    "Dispatcher",
    "CommandExecutor",
    "Response",
    "Listener",
    "bind_listener",
    "systemd_listener",
]
