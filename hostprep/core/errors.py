"""
Error taxonomy for provisioning runs.

Executors never raise these; they return receipts. The runner
classifies a failed receipt into one of these at the step boundary,
and only the provision use case turns them into a ProvisioningResult.
"""

from __future__ import annotations


class ProvisionError(Exception):
    """Base class for provisioning failures."""


class DetectionInconclusive(ProvisionError):
    """No variant predicate matched the host. Not an error for the run."""


class StepFailed(ProvisionError):
    """A step did not complete."""

    fatal = False

    def __init__(self, step_id: str, reason: str):
        super().__init__(reason)
        self.step_id = step_id
        self.reason = reason


class StepFailedRecoverable(StepFailed):
    """The operator may choose to continue past this failure."""


class StepFailedFatal(StepFailed):
    """The run aborts; no further steps execute."""

    fatal = True


class PrivilegeDenied(StepFailedFatal):
    """The host refused elevated privilege for a step."""


class ExternalToolMissing(StepFailed):
    """A tool the step depends on is not installed.

    Fatal for build-critical tools, recoverable for conveniences;
    the step's declared criticality decides.
    """

    def __init__(self, step_id: str, tool: str, reason: str, *, fatal: bool):
        super().__init__(step_id, reason)
        self.tool = tool
        self.fatal = fatal


class OperatorAborted(ProvisionError):
    """The operator declined to continue after a recoverable failure."""
