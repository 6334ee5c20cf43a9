"""
Step runner — executes one variant's steps in order.

Flow per step:
    conditions → execute → receipt → (failed?) classify → fatal: abort
                                                        → recoverable: ask operator

Failure policy comes from the step declaration, never from the error
text. A fatal failure stops the run before any later step starts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import click

from hostprep.core.engine.step_executors import StepContext, check_conditions, execute_step
from hostprep.core.errors import (
    ExternalToolMissing,
    OperatorAborted,
    PrivilegeDenied,
    StepFailed,
    StepFailedFatal,
    StepFailedRecoverable,
)
from hostprep.core.models.result import ProvisioningResult, StepReceipt
from hostprep.core.models.step import Criticality, Step, StepKind, Variant

logger = logging.getLogger(__name__)


def _echo_stderr(receipt: StepReceipt, *, err: bool = False) -> None:
    """Replay what a failed command wrote to stderr."""
    stderr = receipt.metadata.get("stderr", "")
    if stderr:
        click.echo(stderr.rstrip(), err=err)


def classify_failure(step: Step, receipt: StepReceipt) -> StepFailed:
    """Turn a failed receipt into a classified failure.

    - privilege denied → PrivilegeDenied, unless the step is
      explicitly recoverable
    - required tool missing → ExternalToolMissing, fatal per criticality
    - anything else → by the step's resolved criticality
    """
    reason = receipt.error or f"{step.display} failed"
    fatal = step.effective_criticality is Criticality.FATAL

    if receipt.privilege_denied:
        if step.explicitly_recoverable:
            return StepFailedRecoverable(step.id, reason)
        return PrivilegeDenied(step.id, reason)

    if receipt.tool_missing:
        return ExternalToolMissing(step.id, receipt.tool_missing, reason, fatal=fatal)

    if fatal:
        return StepFailedFatal(step.id, reason)
    return StepFailedRecoverable(step.id, reason)


class StepRunner:
    """Drives a variant to Completed or Aborted."""

    def __init__(self, context: StepContext):
        self._ctx = context
        self._receipts: list[StepReceipt] = []

    def run(self, variant: Variant) -> ProvisioningResult:
        """Execute every step of ``variant``; produce the terminal result."""
        self._receipts = []
        try:
            self._run_steps(variant.steps)
        except StepFailed as failure:
            click.secho(f"✗ {failure.reason}", fg="red", err=True)
            if self._receipts and self._receipts[-1].step_id == failure.step_id:
                _echo_stderr(self._receipts[-1], err=True)
            hint = self._hint_for(variant.steps, failure.step_id)
            if hint:
                click.echo(hint, err=True)
            click.secho("Aborting: no further steps were run.", fg="red", err=True)
            logger.error("Variant %s aborted at %s: %s", variant.name, failure.step_id, failure.reason)
            return ProvisioningResult.aborted(variant.label, failure.reason, self._receipts)
        except OperatorAborted as e:
            click.secho(f"✗ {e}", fg="red", err=True)
            logger.warning("Variant %s aborted by operator: %s", variant.name, e)
            return ProvisioningResult.aborted(variant.label, str(e), self._receipts)

        logger.info("Variant %s completed (%d steps)", variant.name, len(self._receipts))
        return ProvisioningResult.completed(variant.label, self._receipts)

    # ── Internals ───────────────────────────────────────────────

    def _run_steps(self, steps: Sequence[Step]) -> None:
        for step in steps:
            if step.kind is StepKind.CONFIRM:
                receipt = check_conditions(step, self._ctx)
                if receipt is None:
                    self._run_gated(step)
                    continue
            else:
                if step.kind is not StepKind.INFO:
                    click.secho(f"→ {step.display}", fg="cyan")
                receipt = execute_step(step, self._ctx)
            self._receipts.append(receipt)
            self._log_receipt(step, receipt)

            if receipt.failed:
                failure = classify_failure(step, receipt)
                if failure.fatal:
                    raise failure
                self._recover(step, receipt, failure)

    def _run_gated(self, step: Step) -> None:
        """Ask first; declining skips only this step's payload."""
        if self._ctx.gate.confirm(step.prompt or f"{step.display}?", default=step.default_yes):
            self._receipts.append(StepReceipt.success(step.id, output="confirmed"))
            self._run_steps(step.then)
            return

        click.echo(f"Skipped: {step.display}. Continuing.")
        logger.info("Operator declined %s; payload skipped", step.id)
        self._receipts.append(StepReceipt.skip(step.id, reason="declined by operator"))

    def _recover(self, step: Step, receipt: StepReceipt, failure: StepFailed) -> None:
        """Warn, then let the operator continue or abort."""
        click.secho(f"⚠️  {step.display} failed: {failure.reason}", fg="yellow")
        _echo_stderr(receipt)
        if step.failure_hint:
            click.echo(step.failure_hint)

        if not step.ask_to_continue:
            logger.warning("Continuing past failed step %s: %s", step.id, failure.reason)
            return

        click.echo("You can continue anyway, or abort and fix the problem first.")
        if not self._ctx.gate.confirm("Continue anyway?", default=step.continue_default):
            raise OperatorAborted(f"Stopped after '{step.display}' failed: {failure.reason}")
        logger.warning("Operator chose to continue past %s", step.id)

    def _hint_for(self, steps: Sequence[Step], step_id: str) -> str:
        for step in steps:
            if step.id == step_id:
                return step.failure_hint
            nested = self._hint_for(step.then, step_id)
            if nested:
                return nested
        return ""

    @staticmethod
    def _log_receipt(step: Step, receipt: StepReceipt) -> None:
        status_marker = "✓" if receipt.ok else "✗" if receipt.failed else "⊘"
        logger.info("%s %s → %s", status_marker, step.id, receipt.status)
        if receipt.skipped and receipt.output:
            click.echo(f"   skipped: {receipt.output}")
