"""
Package-manager command builder.

Turns (manager, packages) into an argv. Package names are passed
through untouched; what they mean is the package manager's business.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# manager → (install argv prefix, needs root)
_INSTALL_COMMANDS: dict[str, tuple[list[str], bool]] = {
    "apt": (["apt-get", "--assume-yes", "install"], True),
    "dnf": (["dnf", "--assumeyes", "install"], True),
    "yum": (["yum", "--assumeyes", "install"], True),
    "pacman": (["pacman", "--sync", "--needed", "--noconfirm"], True),
    "emerge": (["emerge", "--noreplace"], True),
    "brew": (["brew", "install"], False),
    "slackpkg": (["/usr/sbin/slackpkg", "install"], True),
    "sbopkg": (["/usr/sbin/sbopkg", "-i"], True),
}


class UnknownPackageManager(ValueError):
    """Raised for a manager with no install command."""


def supported_managers() -> list[str]:
    return sorted(_INSTALL_COMMANDS)


def manager_needs_sudo(manager: str) -> bool:
    try:
        return _INSTALL_COMMANDS[manager][1]
    except KeyError as e:
        raise UnknownPackageManager(manager) from e


def build_install_cmd(manager: str, packages: list[str]) -> list[str]:
    """Build a package-install command for a list of packages.

    Args:
        manager: Package manager ID (``apt``, ``pacman``, ``brew`` ...).
        packages: Package names to install, in order.

    Returns:
        Command list suitable for subprocess.run().

    Raises:
        UnknownPackageManager: If the manager is not supported.
    """
    try:
        prefix, _ = _INSTALL_COMMANDS[manager]
    except KeyError as e:
        logger.error("No install command for package manager: %s", manager)
        raise UnknownPackageManager(manager) from e

    if manager == "sbopkg":
        # sbopkg takes the whole queue as one -i argument
        return prefix + [" ".join(packages)]
    return prefix + list(packages)
