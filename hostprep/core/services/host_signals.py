"""
Host signal capture — all detection I/O happens here, once.

Reads the platform identifier, the uname string and the well-known
distribution marker files, and freezes them into a HostSignals
snapshot. Variant predicates only ever see the snapshot.
"""

from __future__ import annotations

import logging
import platform
import sys
from pathlib import Path

from hostprep.core.models.host import HostSignals

logger = logging.getLogger(__name__)

ARCH_RELEASE = "/etc/arch-release"
MANJARO_RELEASE = "/etc/manjaro-release"
GENTOO_RELEASE = "/etc/gentoo-release"
FEDORA_RELEASE = "/etc/fedora-release"
SLACKWARE_VERSION = "/etc/slackware-version"
OS_RELEASE = "/etc/os-release"

MARKER_FILES: tuple[str, ...] = (
    ARCH_RELEASE,
    MANJARO_RELEASE,
    GENTOO_RELEASE,
    FEDORA_RELEASE,
    SLACKWARE_VERSION,
    OS_RELEASE,
)


def _uname() -> str:
    u = platform.uname()
    return " ".join(part for part in (u.system, u.node, u.release, u.version, u.machine) if part)


def read_markers(root: Path, names: tuple[str, ...] = MARKER_FILES) -> dict[str, str]:
    """Read the marker files present under ``root``.

    Keys are the absolute marker paths (``/etc/arch-release``) no matter
    what ``root`` is, so predicates stay independent of where the files
    were read from. Unreadable markers count as present with no content.
    """
    markers: dict[str, str] = {}
    for name in names:
        candidate = root / name.lstrip("/")
        if not candidate.is_file():
            continue
        try:
            markers[name] = candidate.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug("Cannot read %s: %s", candidate, e)
            markers[name] = ""
    return markers


def capture_host_signals(
    *,
    root: Path | str = "/",
    hint: str | None = None,
    platform_id: str | None = None,
    kernel: str | None = None,
) -> HostSignals:
    """Snapshot the host.

    Args:
        root: Filesystem root marker files are read from (tests point
            this at a fixture tree).
        hint: Optional caller-supplied variant hint.
        platform_id: Override for ``sys.platform``.
        kernel: Override for the uname string.
    """
    signals = HostSignals(
        platform=platform_id or sys.platform,
        kernel=kernel if kernel is not None else _uname(),
        markers=read_markers(Path(root)),
        hint=hint or None,
    )
    logger.info(
        "Host signals: platform=%s markers=%s hint=%s",
        signals.platform,
        sorted(signals.markers),
        signals.hint,
    )
    return signals
