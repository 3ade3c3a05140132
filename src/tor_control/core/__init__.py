"""Core control client implementation.

This package contains the core components of the control client:
- The control port connection
- Command dispatch and the command registry
- Concrete commands
- The partially buffered stream adapter
- Local daemon discovery
- Exception handling

The core package provides all the protocol functionality, while keeping the
implementation details separate from the command-line interface.
"""

from .command import (
    CommandExchange,
    CommandResponse,
    PairsResponse,
    ResponsePairs,
    dispatch,
    dispatch_and_return,
    register_command,
    registered_commands,
    resolve_command,
)
from .commands import GetConfCommand, GetInfoCommand, SetConfCommand, SignalCommand
from .connection import ControlConnection, ControlReply

__all__ = [
    "CommandExchange",
    "CommandResponse",
    "ControlConnection",
    "ControlReply",
    "dispatch",
    "dispatch_and_return",
    "GetConfCommand",
    "GetInfoCommand",
    "PairsResponse",
    "register_command",
    "registered_commands",
    "resolve_command",
    "ResponsePairs",
    "SetConfCommand",
    "SignalCommand",
]
