"""
hostprep — CLI entrypoint.

Usage:
    hostprep --help
    hostprep run [--yes] [LAUNCHER ARGS...]
    hostprep detect
    hostprep plan [--variant NAME]
    hostprep variants
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from hostprep import __version__
from hostprep.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="hostprep")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hostprep — prepare this machine to run the application."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("HOSTPREP_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("HOSTPREP_LOG_FILE"),
        log_file_level=os.environ.get("HOSTPREP_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


def _load_config_or_exit(ctx: click.Context):
    from hostprep.core.config.loader import ConfigError, load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@cli.command(
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Answer yes to every prompt.")
@click.option("--hint", default=None, help="Variant hint, e.g. 'raspberry-pi'.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the result as JSON.")
@click.argument("passthrough", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(
    ctx: click.Context,
    assume_yes: bool,
    hint: str | None,
    as_json: bool,
    passthrough: tuple[str, ...],
) -> None:
    """Detect the host and provision it.

    Extra arguments are not interpreted; they are echoed in the final
    start command for the application launcher.
    """
    from hostprep.core.services.confirm import ConfirmationGate
    from hostprep.core.services.host_signals import capture_host_signals
    from hostprep.core.use_cases.provision import run_provision

    config = _load_config_or_exit(ctx)
    signals = capture_host_signals(hint=hint)
    gate = ConfirmationGate(assume_yes=assume_yes)

    result = run_provision(config, signals, gate, passthrough=passthrough)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.status == "aborted":
        click.secho(f"\n❌ Provisioning aborted: {result.reason}", fg="red", bold=True, err=True)
    elif result.status == "completed" and not ctx.obj.get("quiet"):
        click.secho(f"✅ {result.variant} provisioned", fg="green", bold=True)

    sys.exit(result.exit_code)


@cli.command()
@click.option("--hint", default=None, help="Variant hint, e.g. 'raspberry-pi'.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(hint: str | None, as_json: bool) -> None:
    """Show which variant this host matches."""
    from hostprep.core.services.detection import detect_variant
    from hostprep.core.services.host_signals import capture_host_signals

    signals = capture_host_signals(hint=hint)
    variant = detect_variant(signals)

    if as_json:
        click.echo(json.dumps({
            "platform": signals.platform,
            "kernel": signals.kernel,
            "markers": sorted(signals.markers),
            "hint": signals.hint,
            "variant": variant.name if variant else None,
        }, indent=2))
        return

    click.secho("\n🔍 Host", fg="cyan", bold=True)
    click.echo(f"   Platform: {signals.platform}")
    if signals.kernel:
        click.echo(f"   Kernel:   {signals.kernel}")
    for marker in sorted(signals.markers):
        click.echo(f"   • {marker}")
    click.echo()

    if variant is None:
        click.secho("   ✗ No provisioning procedure for this host", fg="yellow")
    else:
        click.secho(f"   ✓ {variant.label} ", fg="green", nl=False)
        click.echo(f"[{variant.name}]")
    click.echo()


@cli.command()
@click.option("--hint", default=None, help="Variant hint, e.g. 'raspberry-pi'.")
@click.option("--variant", "variant_name", default=None, help="Plan this variant instead of detecting one.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, hint: str | None, variant_name: str | None, as_json: bool) -> None:
    """Show the steps a run would take, without running them."""
    from hostprep.core.config.loader import ConfigError
    from hostprep.core.services.detection import registry_names
    from hostprep.core.services.host_signals import capture_host_signals
    from hostprep.core.use_cases.provision import plan_provision

    if variant_name is not None and variant_name not in registry_names():
        click.secho(f"❌ Unknown variant: {variant_name}", fg="red", err=True)
        click.echo(f"   Available: {', '.join(registry_names())}", err=True)
        sys.exit(1)

    config = _load_config_or_exit(ctx)
    try:
        result = plan_provision(config, capture_host_signals(hint=hint), variant_name=variant_name)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.variant is None:
        click.echo("No supported platform detected; nothing to plan.")
        return

    click.secho(f"\n📋 Plan: {result.variant.label}", fg="cyan", bold=True)
    for i, line in enumerate(result.steps, 1):
        click.echo(f"   {i:>2}. {line}")

    click.echo()
    click.secho(f"   System packages: {len(result.system_packages)}", bold=True)
    if result.system_packages:
        click.echo(f"     {' '.join(result.system_packages)}")
    click.secho(f"   Application dependencies: {len(result.application_dependencies)}", bold=True)
    for dep in result.application_dependencies:
        click.echo(f"     • {dep}")
    click.echo()
    click.echo(f"   Start with: {result.start_command}")
    click.echo()


@cli.command("variants")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_variants(as_json: bool) -> None:
    """List supported variants in detection order."""
    from hostprep.core.services.detection import REGISTRY

    if as_json:
        click.echo(json.dumps([
            {"name": v.name, "label": v.label, "steps": len(v.steps)} for v in REGISTRY
        ], indent=2))
        return

    click.secho("\n🖥  Supported hosts (first match wins)", fg="cyan", bold=True)
    for i, variant in enumerate(REGISTRY, 1):
        click.echo(f"   {i}. {variant.name:<20} {variant.label}")
    click.echo()


if __name__ == "__main__":
    cli()
