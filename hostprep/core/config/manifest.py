"""
Dependency manifest loader — reads a requirements file.

One specifier per line; blank lines, ``#`` comments, inline
comments and pip option lines (``-r``, ``--index-url``) are dropped.
Order is preserved.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from hostprep.core.config.loader import ConfigError
from hostprep.core.models.manifest import PackageManifest

logger = logging.getLogger(__name__)


def read_requirements(path: Path) -> list[str]:
    """Parse a requirements file into an ordered list of specifiers.

    A missing file yields an empty list (logged as a warning).

    Raises:
        ConfigError: If the file exists but cannot be read as UTF-8 text.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("Dependency manifest not found: %s", path)
        return []
    except UnicodeDecodeError as e:
        raise ConfigError(f"Dependency manifest {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read dependency manifest {path}: {e}") from e

    specs: list[str] = []
    for line in raw.splitlines():
        # " #" starts an inline comment; "#" at column 0 is a full-line comment
        line = line.split(" #", 1)[0].strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("-"):
            logger.warning("Ignoring pip option in %s: %s", path.name, line)
            continue
        specs.append(line)
    return specs


def load_manifest(
    requirements_path: Path,
    system_packages: Iterable[str] = (),
) -> PackageManifest:
    """Build a PackageManifest from a variant's packages and a requirements file."""
    return PackageManifest(
        system_packages=list(system_packages),
        application_dependencies=read_requirements(requirements_path),
    )
