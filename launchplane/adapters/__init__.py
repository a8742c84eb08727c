"""Adapters — process execution for external tools.

Public re-exports for convenient access.
"""

from launchplane.adapters.mock import MockCommandExecutor
from launchplane.adapters.shell.command import CommandExecutor
from launchplane.adapters.shell.privilege import PrivilegeEscalator

__all__ = [
    "CommandExecutor",
    "MockCommandExecutor",
    "PrivilegeEscalator",
]
