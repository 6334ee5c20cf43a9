"""
Shell command runner — the single place subprocesses are started.

Every package install, environment build and plain command goes
through ``run_command``. Sudo handling, scoped environment and error
capture are centralised here.

Scoped environment: callers pass ``env_overrides`` / ``env_unset``
for ONE call. The child gets a modified copy of ``os.environ``; the
process environment itself is never touched, so nothing needs
restoring afterwards.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Iterable, Mapping
from typing import Any

logger = logging.getLogger(__name__)

# Substrings sudo prints when it refuses to elevate.
_SUDO_DENIAL_MARKERS = (
    "is not in the sudoers file",
    "incorrect password attempt",
    "a password is required",
    "is not allowed to execute",
    "sorry, try again",
)


def scoped_env(
    overrides: Mapping[str, str] | None = None,
    unset: Iterable[str] = (),
) -> dict[str, str]:
    """Build the environment for one child process.

    Values in ``overrides`` may reference existing variables
    (``$HOME``) and are expanded against the current environment.
    """
    env = os.environ.copy()
    for key in unset:
        env.pop(key, None)
    if overrides:
        for key, value in overrides.items():
            env[key] = os.path.expandvars(value)
    return env


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    capture_output: bool = False,
    timeout: int | None = None,
    env_overrides: Mapping[str, str] | None = None,
    env_unset: Iterable[str] = (),
    cwd: str | None = None,
) -> dict[str, Any]:
    """Run a command, optionally elevated.

    stdout streams to the operator's terminal unless ``capture_output``
    is set (used for probes such as ``brew --prefix``). stderr is always
    captured so failures can be reported and classified.

    Args:
        cmd: Command list for ``subprocess.run()``.
        needs_sudo: Whether the command requires root.
        capture_output: Capture stdout instead of streaming it.
        timeout: Seconds before ``TimeoutExpired`` (None = wait forever).
        env_overrides: Extra env vars for this call only.
        env_unset: Env vars removed for this call only.
        cwd: Working directory for the command.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": "...", ...}`` on failure. Failures may
        carry ``privilege_denied`` or ``tool_missing``.
    """
    # ── Sudo handling ──
    if needs_sudo and not _is_root():
        if shutil.which("sudo") is None:
            return {
                "ok": False,
                "privilege_denied": True,
                "error": "This step requires root privileges and sudo is not available.",
            }
        cmd = ["sudo", *cmd]

    env = scoped_env(env_overrides, env_unset)

    logger.debug("Executing: %s (cwd=%s)", " ".join(cmd), cwd or ".")

    # ── Execute ──
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE if capture_output else None,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except FileNotFoundError:
        return {
            "ok": False,
            "tool_missing": cmd[0],
            "error": f"Command not found: {cmd[0]}",
        }
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "")[-2000:]
    stderr = (result.stderr or "")[-2000:]

    if result.returncode == 0:
        return {
            "ok": True,
            "stdout": stdout,
            "return_code": 0,
            "elapsed_ms": elapsed_ms,
        }

    lowered = stderr.lower()
    if cmd[0] == "sudo" and any(marker in lowered for marker in _SUDO_DENIAL_MARKERS):
        return {
            "ok": False,
            "privilege_denied": True,
            "error": "Elevated privileges were denied.",
            "stderr": stderr,
            "return_code": result.returncode,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "stderr": stderr,
        "stdout": stdout,
        "return_code": result.returncode,
        "elapsed_ms": elapsed_ms,
    }


class CommandRunner:
    """Injectable front for ``run_command``.

    Step executors and the environment builder hold one of these so
    tests can swap in a recording double.
    """

    def run(self, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
        return run_command(cmd, **kwargs)
