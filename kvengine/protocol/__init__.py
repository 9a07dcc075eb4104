"""Protocol module for KV-Engine."""

from .commands import Command, CommandType, Response, ResponseStatus
from .executor import CommandExecutor
from .parser import ProtocolParser

__all__ = [
    "Command",
    "CommandExecutor",
    "CommandType",
    "Response",
    "ResponseStatus",
    "ProtocolParser",
]
