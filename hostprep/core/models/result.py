"""
StepReceipt and ProvisioningResult — the outcome contract.

Step executors return receipts, never exceptions. The runner turns a
failed receipt into a classified failure at the step boundary, and the
provision use case produces exactly one ProvisioningResult per run.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepReceipt(BaseModel):
    """Result of executing (or skipping) one step."""

    step_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def privilege_denied(self) -> bool:
        return bool(self.metadata.get("privilege_denied"))

    @property
    def tool_missing(self) -> str | None:
        return self.metadata.get("tool_missing")

    @classmethod
    def success(cls, step_id: str, output: str = "", **kwargs: Any) -> StepReceipt:
        """Create a success receipt."""
        return cls(step_id=step_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, step_id: str, error: str, **kwargs: Any) -> StepReceipt:
        """Create a failure receipt."""
        return cls(step_id=step_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, step_id: str, reason: str = "", **kwargs: Any) -> StepReceipt:
        """Create a skip receipt."""
        return cls(step_id=step_id, status="skipped", output=reason, **kwargs)


class ProvisioningResult(BaseModel):
    """Terminal value of a provisioning run.

    One of ``completed(variant)``, ``aborted(variant, reason)`` or
    ``no_match``. Frozen: nothing changes after it is produced.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["completed", "aborted", "no_match"]
    variant: str | None = None
    reason: str = ""
    receipts: list[StepReceipt] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.status == "aborted" else 0

    @classmethod
    def completed(cls, variant: str, receipts: list[StepReceipt] | None = None) -> ProvisioningResult:
        return cls(status="completed", variant=variant, receipts=list(receipts or []))

    @classmethod
    def aborted(
        cls,
        variant: str,
        reason: str,
        receipts: list[StepReceipt] | None = None,
    ) -> ProvisioningResult:
        return cls(status="aborted", variant=variant, reason=reason, receipts=list(receipts or []))

    @classmethod
    def no_match(cls) -> ProvisioningResult:
        return cls(status="no_match")

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "variant": self.variant,
            "reason": self.reason,
            "exit_code": self.exit_code,
            "steps": [r.model_dump(mode="json") for r in self.receipts],
        }
