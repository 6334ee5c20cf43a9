"""
Completion reporter — the "configuration finished" summary.

Best-effort: a missing or malformed changelog yields an empty version,
never an error.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from hostprep.core.config.loader import ProvisionConfig
from hostprep.core.models.step import Variant

logger = logging.getLogger(__name__)

# "openbazaar (0.1.2) unstable; urgency=low" → "0.1.2"
_CHANGELOG_ENTRY = re.compile(r"^\s*[\w.+-]+\s+\(([^()\s]+)\)")


def extract_version(changelog: Path) -> str:
    """Version from the first ``name (version)`` line, or ``""``."""
    try:
        with open(changelog, encoding="utf-8", errors="replace") as f:
            for line in f:
                m = _CHANGELOG_ENTRY.match(line)
                if m:
                    return m.group(1)
    except OSError as e:
        logger.debug("Cannot read changelog %s: %s", changelog, e)
        return ""
    logger.debug("No version entry in %s", changelog)
    return ""


def start_command(
    variant: Variant,
    config: ProvisionConfig,
    passthrough: Sequence[str] = (),
) -> str:
    """The shell line that starts the application and follows its log."""
    parts = [config.launcher_command, *variant.start_flags, *passthrough, "start"]
    return f"{' '.join(parts)}; tail -F {config.log_file}"


def render_completion(
    variant: Variant,
    config: ProvisionConfig,
    passthrough: Sequence[str] = (),
) -> str:
    """Completion banner plus how-to-start instructions."""
    version = extract_version(config.changelog_file)
    title = f" {config.app_name} "
    lines = [
        "",
        f"  {'=' * len(title)}",
        f"  {title}",
        f"  {'=' * len(title)}",
        "",
        f"  Release {version}" if version else "  Release (unknown)",
        "",
        f"{config.app_name} configuration finished!",
    ]

    command = start_command(variant, config, passthrough)
    if variant.address_probe:
        lines += [
            f"Run {config.app_name} on {variant.label} without HDMI/VideoOut.",
            "Type the following shell commands to start.",
            "",
            variant.address_probe,
            command,
        ]
    else:
        lines.append(f"Run '{command}' to start {config.app_name} and output logs.")

    lines.append("")
    return "\n".join(lines)
