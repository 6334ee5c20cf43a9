"""Adapters — bindings to the host's tools (shell, package managers, PATH).

Public re-exports for convenient access.
"""

from hostprep.adapters.package_managers import build_install_cmd, supported_managers
from hostprep.adapters.probe import command_exists
from hostprep.adapters.shell.command import CommandRunner

__all__ = [
    "CommandRunner",
    "build_install_cmd",
    "command_exists",
    "supported_managers",
]
