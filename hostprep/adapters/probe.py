"""
Capability probe — is a command available on this host?

Read-only, no caching: a previous step may just have installed the
tool, so every question is answered against the live PATH.
"""

from __future__ import annotations

import shutil


def command_exists(name: str, path: str | None = None) -> bool:
    """Whether ``name`` resolves to an executable.

    Accepts bare command names (looked up on PATH) and paths such as
    ``/usr/sbin/sbopkg``.
    """
    if not name:
        return False
    return shutil.which(name, path=path) is not None
