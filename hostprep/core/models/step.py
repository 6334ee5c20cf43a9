"""
Step and Variant models — the provisioning procedure contract.

A Variant is one complete procedure for one platform family: a pure
detection predicate plus an ordered list of Steps. Steps declare their
own failure policy (``criticality``) at authoring time; the runner
never infers it from the error.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from hostprep.core.models.host import HostSignals


class StepKind(str, Enum):
    """What a step does."""

    PACKAGE_INSTALL = "package_install"
    COMMAND = "command"
    CONFIRM = "confirm"
    ENVIRONMENT = "environment"
    INFO = "info"


class Criticality(str, Enum):
    """How a failure of the step is handled."""

    FATAL = "fatal"
    RECOVERABLE = "recoverable"


class Step(BaseModel):
    """One ordered provisioning action.

    Payload fields are used according to ``kind``:

        package_install: packages, manager, skip_present
        command:         command, needs_sudo, env_unset, env_overrides
        confirm:         prompt, default_yes, then (the gated steps)
        environment:     brew_prefix
        info:            message

    Conditions (checked at execution time, never cached):

        requires:      command that must exist, else ExternalToolMissing
        when_missing:  run only if this command is NOT on PATH
        when_present:  run only if this command IS on PATH
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: StepKind
    label: str = ""
    criticality: Criticality | None = None   # None → kind default

    # ── Payload ──────────────────────────────────────────────────
    packages: list[str] = Field(default_factory=list)
    manager: str = ""
    skip_present: bool = False
    command: list[str] = Field(default_factory=list)
    needs_sudo: bool = False
    env_unset: list[str] = Field(default_factory=list)
    env_overrides: dict[str, str] = Field(default_factory=dict)
    prompt: str = ""
    default_yes: bool = False
    then: list[Step] = Field(default_factory=list)
    brew_prefix: str | None = None
    message: str = ""

    # ── Conditions ───────────────────────────────────────────────
    requires: str | None = None
    when_missing: str | None = None
    when_present: str | None = None

    # ── Failure handling ─────────────────────────────────────────
    ask_to_continue: bool = True
    continue_default: bool = True
    failure_hint: str = ""

    @property
    def display(self) -> str:
        return self.label or self.id

    @property
    def effective_criticality(self) -> Criticality:
        """Resolved failure policy.

        Environment builds are always fatal: every later dependency
        install depends on them.
        """
        if self.kind is StepKind.ENVIRONMENT:
            return Criticality.FATAL
        return self.criticality or Criticality.RECOVERABLE

    @property
    def explicitly_recoverable(self) -> bool:
        return self.criticality is Criticality.RECOVERABLE


Step.model_rebuild()

Predicate = Callable[[HostSignals], bool]


@dataclass(frozen=True)
class Variant:
    """A named, mutually exclusive provisioning procedure."""

    name: str
    label: str
    predicate: Predicate
    steps: tuple[Step, ...] = ()
    start_flags: tuple[str, ...] = ()
    address_probe: str | None = None

    def matches(self, signals: HostSignals) -> bool:
        return bool(self.predicate(signals))

    @property
    def system_packages(self) -> list[str]:
        """Every package this variant installs, in declaration order."""
        seen: list[str] = []
        for step in _walk(self.steps):
            if step.kind is not StepKind.PACKAGE_INSTALL:
                continue
            for package in step.packages:
                if package not in seen:
                    seen.append(package)
        return seen


def _walk(steps: tuple[Step, ...] | list[Step]):
    for step in steps:
        yield step
        if step.then:
            yield from _walk(step.then)
