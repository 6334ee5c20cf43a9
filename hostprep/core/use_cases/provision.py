"""
Provision use case — detect the host and run its variant.

The top-level orchestrator: host signals in, exactly one
ProvisioningResult out. Detection happens once; the selected variant's
steps run in order; the completion report prints only when every step
either succeeded or was explicitly continued past.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import click

from hostprep.adapters.probe import command_exists
from hostprep.adapters.shell.command import CommandRunner
from hostprep.core.config.loader import ConfigError, ProvisionConfig
from hostprep.core.config.manifest import load_manifest
from hostprep.core.engine.runner import StepRunner
from hostprep.core.engine.step_executors import StepContext, describe_step, template_values
from hostprep.core.errors import DetectionInconclusive
from hostprep.core.models.host import HostSignals
from hostprep.core.models.result import ProvisioningResult
from hostprep.core.models.step import Variant
from hostprep.core.services.confirm import ConfirmationGate
from hostprep.core.services.detection import REGISTRY, get_variant, select_variant
from hostprep.core.services.report import render_completion, start_command

logger = logging.getLogger(__name__)


def run_provision(
    config: ProvisionConfig,
    signals: HostSignals,
    gate: ConfirmationGate,
    *,
    runner: CommandRunner | None = None,
    probe: Callable[[str], bool] = command_exists,
    passthrough: Sequence[str] = (),
    registry: Sequence[Variant] = REGISTRY,
) -> ProvisioningResult:
    """Provision this host.

    Args:
        config: Application checkout settings.
        signals: Host snapshot captured at startup.
        gate: Where every yes/no question goes.
        runner: Subprocess runner (tests pass a recording fake).
        probe: PATH lookup used by step conditions.
        passthrough: Extra launcher arguments echoed in the start command.
        registry: Variants in priority order.

    Returns:
        ``completed``, ``aborted`` or ``no_match``.
    """
    click.echo("Detecting OS...")
    try:
        variant = select_variant(signals, registry)
    except DetectionInconclusive as e:
        logger.info("%s", e)
        click.echo("No supported platform detected; nothing to do.")
        return ProvisioningResult.no_match()

    click.secho(f"Found {variant.label}", fg="green", bold=True)

    try:
        manifest = load_manifest(config.requirements_file, variant.system_packages)
    except ConfigError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        logger.error("Variant %s aborted before any step ran: %s", variant.name, e)
        return ProvisioningResult.aborted(variant.label, str(e))

    logger.info(
        "Manifest: %d system packages, %d application dependencies",
        len(manifest.system_packages),
        len(manifest.application_dependencies),
    )

    context = StepContext(
        config=config,
        manifest=manifest,
        gate=gate,
        runner=runner or CommandRunner(),
        probe=probe,
    )
    result = StepRunner(context).run(variant)

    if result.status == "completed":
        click.echo(render_completion(variant, config, passthrough))
    return result


# ── Plan (dry run) ──────────────────────────────────────────────


@dataclass
class PlanResult:
    """What a run would do on this host, without doing it."""

    variant: Variant | None = None
    steps: list[str] = field(default_factory=list)
    system_packages: list[str] = field(default_factory=list)
    application_dependencies: list[str] = field(default_factory=list)
    start_command: str = ""

    def to_dict(self) -> dict:
        if self.variant is None:
            return {"variant": None, "steps": []}
        return {
            "variant": self.variant.name,
            "label": self.variant.label,
            "steps": self.steps,
            "system_packages": self.system_packages,
            "application_dependencies": self.application_dependencies,
            "start_command": self.start_command,
        }


def plan_provision(
    config: ProvisionConfig,
    signals: HostSignals,
    *,
    passthrough: Sequence[str] = (),
    registry: Sequence[Variant] = REGISTRY,
    variant_name: str | None = None,
) -> PlanResult:
    """Describe the steps a variant would run.

    The detected variant by default; ``variant_name`` plans a named one
    instead, e.g. to review another platform's procedure.

    Raises:
        ConfigError: If the requirements file cannot be read.
    """
    if variant_name is not None:
        variant = get_variant(variant_name, registry)
        if variant is None:
            return PlanResult()
    else:
        try:
            variant = select_variant(signals, registry)
        except DetectionInconclusive:
            return PlanResult()

    manifest = load_manifest(config.requirements_file, variant.system_packages)
    values = template_values(config)

    lines: list[str] = []

    def _describe(steps, depth: int) -> None:
        for step in steps:
            lines.append("  " * depth + describe_step(step, values))
            _describe(step.then, depth + 1)

    _describe(variant.steps, 0)

    return PlanResult(
        variant=variant,
        steps=lines,
        system_packages=manifest.system_packages,
        application_dependencies=manifest.application_dependencies,
        start_command=start_command(variant, config, passthrough),
    )
