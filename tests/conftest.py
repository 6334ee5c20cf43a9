"""
Shared test fixtures and doubles.

Nothing here touches the real host: commands go to a recording runner,
PATH lookups to a fake probe, and prompts to a scripted reader.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from hostprep.core.config.loader import ProvisionConfig
from hostprep.core.models.host import HostSignals
from hostprep.core.services.confirm import ConfirmationGate


@dataclass
class Call:
    cmd: list[str]
    kwargs: dict[str, Any]

    @property
    def line(self) -> str:
        return " ".join(self.cmd)


@dataclass
class _Rule:
    match: str
    result: dict[str, Any]
    effect: Callable[[list[str]], None] | None = None


class RecordingRunner:
    """CommandRunner double: records every call, succeeds by default.

    ``on(substring, ok=False, ...)`` makes the first call whose joined
    command line contains ``substring`` return the given result.
    ``effect`` runs before the result is returned (e.g. to create a
    directory the way ``virtualenv`` would).
    """

    def __init__(self):
        self.calls: list[Call] = []
        self._rules: list[_Rule] = []

    def on(
        self,
        match: str,
        *,
        effect: Callable[[list[str]], None] | None = None,
        **result: Any,
    ) -> RecordingRunner:
        self._rules.append(_Rule(match=match, result=result, effect=effect))
        return self

    def run(self, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
        call = Call(cmd=list(cmd), kwargs=kwargs)
        self.calls.append(call)
        out: dict[str, Any] = {"ok": True, "stdout": "", "stderr": "", "return_code": 0, "elapsed_ms": 1}
        for rule in self._rules:
            if rule.match in call.line:
                if rule.effect:
                    rule.effect(call.cmd)
                out.update(rule.result)
                if not out.get("ok") and "return_code" not in rule.result:
                    out["return_code"] = 1
                break
        return out

    @property
    def lines(self) -> list[str]:
        return [c.line for c in self.calls]

    def find(self, match: str) -> Call:
        for call in self.calls:
            if match in call.line:
                return call
        raise AssertionError(f"No call matching {match!r} in {self.lines}")

    def ran(self, match: str) -> bool:
        return any(match in line for line in self.lines)


class FakeProbe:
    """PATH lookup double; ``present`` may change between calls."""

    def __init__(self, present: Iterable[str] = ()):
        self.present = set(present)
        self.asked: list[str] = []

    def __call__(self, name: str) -> bool:
        self.asked.append(name)
        return name in self.present


class ScriptedReader:
    """Answers prompts from a list and records what was asked."""

    def __init__(self, answers: Iterable[str] = ()):
        self.answers = list(answers)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return self.answers.pop(0)


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def make_gate() -> Callable[..., tuple[ConfirmationGate, ScriptedReader]]:
    def _make(*answers: str) -> tuple[ConfirmationGate, ScriptedReader]:
        reader = ScriptedReader(answers)
        return ConfirmationGate(reader), reader
    return _make


@pytest.fixture
def make_signals() -> Callable[..., HostSignals]:
    def _make(
        platform: str = "linux",
        markers: dict[str, str] | Iterable[str] = (),
        kernel: str = "Linux host 6.1.0 #1 SMP x86_64",
        hint: str | None = None,
    ) -> HostSignals:
        if not isinstance(markers, dict):
            markers = {m: "" for m in markers}
        return HostSignals(platform=platform, kernel=kernel, markers=markers, hint=hint)
    return _make


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    """An application checkout with a requirements file and changelog."""
    root = tmp_path / "app"
    root.mkdir()
    (root / "requirements.txt").write_text("requests>=2.0\nPyYAML==6.0.1\n")
    (root / "changelog").write_text(
        "demo (0.4.2) unstable; urgency=low\n\n  * Fixes\n\ndemo (0.4.1) unstable; urgency=low\n"
    )
    return root


@pytest.fixture
def config(app_root: Path) -> ProvisionConfig:
    return ProvisionConfig(app_name="demo", root=app_root)
