"""
Environment builder — idempotent virtualenv creation + dependency install.

``ensure(env_path, manifest)``:

1. If ``env_path`` is not a directory, create a virtualenv pinned to the
   configured interpreter. Creation is all-or-nothing: a failed or
   interrupted build removes whatever it left behind, so a half-built
   directory never satisfies the "already exists" check.
2. Install every application dependency, in manifest order, as ONE
   pip call using the environment's own pip. Any failure fails the
   whole call.

Re-running on an existing environment repeats only step 2.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from hostprep.adapters.probe import command_exists
from hostprep.adapters.shell.command import CommandRunner
from hostprep.core.models.manifest import PackageManifest

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentResult:
    """Outcome of one ``ensure`` call."""

    ok: bool
    env_path: Path
    created: bool = False
    installed: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "env_path": str(self.env_path),
            "created": self.created,
            "installed": self.installed,
            "error": self.error,
        }


def _bin_dir(env_path: Path) -> Path:
    return env_path / ("Scripts" if sys.platform == "win32" else "bin")


def _discard(env_path: Path) -> None:
    """Remove a partially created environment."""
    if env_path.is_dir():
        shutil.rmtree(env_path, ignore_errors=True)
        logger.info("Removed partial environment at %s", env_path)


class EnvironmentBuilder:
    """Creates and fills an isolated application environment.

    Args:
        runner: Command runner used for every subprocess.
        interpreter: Interpreter the environment is pinned to
            (e.g. ``python3.12``).
        probe: Capability probe; decides between ``virtualenv`` and
            ``<interpreter> -m venv``.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        interpreter: str = "python3",
        probe: Callable[[str], bool] = command_exists,
    ):
        self._runner = runner
        self._interpreter = interpreter
        self._probe = probe

    def create_command(self, env_path: Path) -> list[str]:
        if self._probe("virtualenv"):
            return ["virtualenv", f"--python={self._interpreter}", str(env_path)]
        return [self._interpreter, "-m", "venv", str(env_path)]

    def pip(self, env_path: Path) -> Path:
        return _bin_dir(env_path) / "pip"

    def ensure(
        self,
        env_path: Path,
        manifest: PackageManifest,
        *,
        env_overrides: Mapping[str, str] | None = None,
    ) -> EnvironmentResult:
        """Create the environment if needed, then install dependencies."""
        env_path = Path(env_path)
        result = EnvironmentResult(ok=False, env_path=env_path)

        if env_path.exists() and not env_path.is_dir():
            result.error = f"{env_path} exists and is not a directory"
            return result

        # ── Create (all-or-nothing) ──
        if env_path.is_dir():
            logger.info("Environment %s already exists, skipping creation", env_path)
        else:
            logger.info("Creating environment %s (%s)", env_path, self._interpreter)
            try:
                created = self._runner.run(self.create_command(env_path))
            except BaseException:
                _discard(env_path)
                raise
            if not created.get("ok"):
                _discard(env_path)
                result.error = created.get("error") or "Environment creation failed"
                stderr = created.get("stderr")
                if stderr:
                    result.error = f"{result.error}: {stderr.strip()}"
                return result
            result.created = True

        # ── Install (one batch) ──
        deps = list(manifest.application_dependencies)
        if not deps:
            logger.info("No application dependencies to install")
            result.ok = True
            return result

        installed = self._runner.run(
            [str(self.pip(env_path)), "install", *deps],
            env_overrides=env_overrides,
        )
        if not installed.get("ok"):
            result.error = installed.get("error") or "Dependency installation failed"
            stderr = installed.get("stderr")
            if stderr:
                result.error = f"{result.error}: {stderr.strip()}"
            return result

        result.ok = True
        result.installed = deps
        return result
