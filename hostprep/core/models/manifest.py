"""
PackageManifest — what gets installed.

System package names and application dependency specifiers are opaque
strings; nothing here checks that they exist.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PackageManifest(BaseModel):
    """Ordered system packages plus ordered application dependencies."""

    system_packages: list[str] = Field(default_factory=list)
    application_dependencies: list[str] = Field(default_factory=list)
