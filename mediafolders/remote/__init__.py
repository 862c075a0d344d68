"""Remote store access: command runners and the folder gateway."""

from .runner import CommandResult, CommandRunner, LocalCommandRunner, SSHCommandRunner, build_runner
from .gateway import OwnerProfile, RemoteFolderGateway

__all__ = [
    "CommandResult",
    "CommandRunner",
    "LocalCommandRunner",
    "SSHCommandRunner",
    "build_runner",
    "OwnerProfile",
    "RemoteFolderGateway",
]
