"""
Step executors — one function per step kind.

Each ``_execute_*_step`` returns a StepReceipt and never raises; the
runner classifies failures. All subprocesses go through the context's
CommandRunner. Confirmation-gated steps are handled by the runner
itself because they recurse into nested steps.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import click

from hostprep.adapters.package_managers import (
    UnknownPackageManager,
    build_install_cmd,
    manager_needs_sudo,
)
from hostprep.adapters.probe import command_exists
from hostprep.adapters.shell.command import CommandRunner
from hostprep.core.config.loader import ProvisionConfig
from hostprep.core.models.manifest import PackageManifest
from hostprep.core.models.result import StepReceipt
from hostprep.core.models.step import Step, StepKind
from hostprep.core.services.confirm import ConfirmationGate
from hostprep.core.services.environment import EnvironmentBuilder

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """Everything a step needs to run."""

    config: ProvisionConfig
    manifest: PackageManifest
    gate: ConfirmationGate
    runner: CommandRunner = field(default_factory=CommandRunner)
    probe: Callable[[str], bool] = command_exists
    builder: EnvironmentBuilder | None = None

    def __post_init__(self) -> None:
        if self.builder is None:
            self.builder = EnvironmentBuilder(
                self.runner,
                interpreter=self.config.interpreter,
                probe=self.probe,
            )

    @property
    def template_values(self) -> dict[str, str]:
        return template_values(self.config)


def template_values(config: ProvisionConfig) -> dict[str, str]:
    """Values for the placeholders command arguments may use."""
    return {
        "requirements": str(config.requirements_file),
        "env_path": str(config.env_dir),
        "python": config.interpreter,
        "app_name": config.app_name,
    }


def render_args(args: list[str], values: dict[str, str]) -> list[str]:
    """Substitute ``{var}`` placeholders in each argument.

    Simple string replacement; unknown placeholders are left alone.
    """
    rendered = []
    for arg in args:
        for key, value in values.items():
            arg = arg.replace(f"{{{key}}}", value)
        rendered.append(arg)
    return rendered


def _receipt_from_run(step: Step, run: dict[str, Any], command: list[str]) -> StepReceipt:
    """Convert a runner result dict into a StepReceipt."""
    metadata: dict[str, Any] = {
        "command": " ".join(command),
        "return_code": run.get("return_code"),
    }
    if run.get("privilege_denied"):
        metadata["privilege_denied"] = True
    if run.get("tool_missing"):
        metadata["tool_missing"] = run["tool_missing"]

    if run.get("ok"):
        return StepReceipt.success(
            step.id,
            output=run.get("stdout", ""),
            duration_ms=run.get("elapsed_ms", 0),
            metadata=metadata,
        )

    error = run.get("error") or "Command failed"
    stderr = (run.get("stderr") or "").strip()
    if stderr:
        error = f"{error}: {stderr.splitlines()[-1]}"
        metadata["stderr"] = stderr
    return StepReceipt.failure(
        step.id,
        error=error,
        duration_ms=run.get("elapsed_ms", 0),
        metadata=metadata,
    )


# ── Conditions ──────────────────────────────────────────────────


def check_conditions(step: Step, ctx: StepContext) -> StepReceipt | None:
    """Evaluate a step's probe conditions.

    Returns a receipt when the step must not run (skipped, or failed
    because a required tool is missing), None when it should run.
    ``requires`` is checked first: a missing mandatory tool fails the
    step even if another condition would have skipped it.
    """
    if step.requires and not ctx.probe(step.requires):
        return StepReceipt.failure(
            step.id,
            error=f"Required tool not found: {step.requires}",
            metadata={"tool_missing": step.requires},
        )
    if step.when_missing and ctx.probe(step.when_missing):
        return StepReceipt.skip(step.id, reason=f"{step.when_missing} already present")
    if step.when_present and not ctx.probe(step.when_present):
        return StepReceipt.skip(step.id, reason=f"{step.when_present} not installed")
    return None


# ── Executors ───────────────────────────────────────────────────


def _execute_package_step(step: Step, ctx: StepContext) -> StepReceipt:
    """Install system packages with the step's package manager."""
    packages = list(step.packages)
    if step.skip_present:
        present = [p for p in packages if ctx.probe(p)]
        packages = [p for p in packages if p not in present]
        if present:
            logger.info("Already installed, skipping: %s", ", ".join(present))

    if not packages:
        return StepReceipt.skip(step.id, reason="No packages to install")

    try:
        cmd = build_install_cmd(step.manager, packages)
        needs_sudo = manager_needs_sudo(step.manager)
    except UnknownPackageManager:
        return StepReceipt.failure(
            step.id,
            error=f"No install command for package manager '{step.manager}'",
        )

    run = ctx.runner.run(cmd, needs_sudo=needs_sudo)
    receipt = _receipt_from_run(step, run, cmd)
    receipt.metadata["packages"] = packages
    return receipt


def _execute_command_step(step: Step, ctx: StepContext) -> StepReceipt:
    """Run a plain command with the step's scoped environment."""
    if not step.command:
        return StepReceipt.failure(step.id, error="Step has no command")

    cmd = render_args(step.command, ctx.template_values)
    run = ctx.runner.run(
        cmd,
        needs_sudo=step.needs_sudo,
        env_overrides=step.env_overrides or None,
        env_unset=step.env_unset,
    )
    return _receipt_from_run(step, run, cmd)


def _brew_build_flags(formula: str, ctx: StepContext) -> dict[str, str]:
    """CFLAGS/LDFLAGS pointing at a Homebrew formula's prefix."""
    run = ctx.runner.run(["brew", "--prefix", formula], capture_output=True)
    prefix = (run.get("stdout") or "").strip()
    if not run.get("ok") or not prefix:
        logger.warning("Could not resolve brew prefix for %s; building without it", formula)
        return {}
    return {"CFLAGS": f"-I{prefix}/include", "LDFLAGS": f"-L{prefix}/lib"}


def _execute_environment_step(step: Step, ctx: StepContext) -> StepReceipt:
    """Create the isolated environment and install application dependencies."""
    overrides = dict(step.env_overrides)
    if step.brew_prefix:
        overrides.update(_brew_build_flags(step.brew_prefix, ctx))

    start = time.monotonic()
    assert ctx.builder is not None
    result = ctx.builder.ensure(ctx.config.env_dir, ctx.manifest, env_overrides=overrides or None)
    elapsed_ms = int((time.monotonic() - start) * 1000)

    if not result.ok:
        return StepReceipt.failure(
            step.id,
            error=result.error or "Environment build failed",
            duration_ms=elapsed_ms,
            metadata=result.to_dict(),
        )
    action = "Created" if result.created else "Reused"
    return StepReceipt.success(
        step.id,
        output=f"{action} {result.env_path}, installed {len(result.installed)} dependencies",
        duration_ms=elapsed_ms,
        metadata=result.to_dict(),
    )


def _execute_info_step(step: Step, ctx: StepContext) -> StepReceipt:
    """Print guidance text. Cannot fail."""
    click.echo()
    click.echo(step.message)
    click.echo()
    return StepReceipt.success(step.id, output=step.message)


_EXECUTORS: dict[StepKind, Callable[[Step, StepContext], StepReceipt]] = {
    StepKind.PACKAGE_INSTALL: _execute_package_step,
    StepKind.COMMAND: _execute_command_step,
    StepKind.ENVIRONMENT: _execute_environment_step,
    StepKind.INFO: _execute_info_step,
}


def execute_step(step: Step, ctx: StepContext) -> StepReceipt:
    """Check conditions, then dispatch to the executor for the step's kind."""
    blocked = check_conditions(step, ctx)
    if blocked is not None:
        return blocked

    executor = _EXECUTORS.get(step.kind)
    if executor is None:
        return StepReceipt.failure(step.id, error=f"No executor for step kind '{step.kind.value}'")

    try:
        return executor(step, ctx)
    except Exception as e:
        # Executors return receipts; anything raised here is a bug
        logger.exception("Step %s raised during execution", step.id)
        return StepReceipt.failure(step.id, error=f"Unexpected error: {e}")


# ── Plan rendering ──────────────────────────────────────────────


def describe_step(step: Step, values: dict[str, str] | None = None) -> str:
    """One-line, human-readable summary of what a step would do."""
    values = values or {}
    kind = step.kind
    if kind is StepKind.PACKAGE_INSTALL:
        detail = f"{step.manager}: {' '.join(step.packages)}"
    elif kind is StepKind.COMMAND:
        detail = " ".join(render_args(step.command, values))
        if step.needs_sudo:
            detail = f"sudo {detail}"
    elif kind is StepKind.CONFIRM:
        detail = f"ask: {step.prompt.splitlines()[-1] if step.prompt else '?'}"
    elif kind is StepKind.ENVIRONMENT:
        detail = values.get("env_path", "environment")
    else:
        detail = step.message.splitlines()[0] if step.message else ""

    conditions = []
    if step.requires:
        conditions.append(f"requires {step.requires}")
    if step.when_missing:
        conditions.append(f"if {step.when_missing} missing")
    if step.when_present:
        conditions.append(f"if {step.when_present} present")
    suffix = f" ({', '.join(conditions)})" if conditions else ""

    return f"[{kind.value}/{step.effective_criticality.value}] {step.display}: {detail}{suffix}"
