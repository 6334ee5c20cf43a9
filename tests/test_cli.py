"""
Tests for CLI commands — run, detect, plan, variants, and global options.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from hostprep.core.models.host import HostSignals
from hostprep.core.models.result import ProvisioningResult
from hostprep.core.services.host_signals import FEDORA_RELEASE
from hostprep.main import cli


@pytest.fixture
def fedora_host(monkeypatch: pytest.MonkeyPatch):
    def _capture(*, hint=None, **kwargs):
        return HostSignals(platform="linux", kernel="Linux f39", markers={FEDORA_RELEASE: ""}, hint=hint)

    monkeypatch.setattr("hostprep.core.services.host_signals.capture_host_signals", _capture)


@pytest.fixture
def recorded_provision(monkeypatch: pytest.MonkeyPatch):
    """Replace the provision use case; record what the CLI passed in."""
    calls: list[dict] = []
    outcome = {"result": ProvisioningResult.completed("Fedora")}

    def _run(config, signals, gate, *, passthrough=(), **kwargs):
        calls.append({"config": config, "signals": signals, "gate": gate, "passthrough": passthrough})
        return outcome["result"]

    monkeypatch.setattr("hostprep.core.use_cases.provision.run_provision", _run)
    return calls, outcome


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "prepare this machine" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestVariantsCommand:
    def test_lists_in_order(self):
        result = CliRunner().invoke(cli, ["variants"])
        assert result.exit_code == 0
        assert result.output.index("macos") < result.output.index("ubuntu")

    def test_json(self):
        result = CliRunner().invoke(cli, ["variants", "--json"])
        data = json.loads(result.output)
        assert data[0]["name"] == "macos"
        assert data[-1]["name"] == "ubuntu"


class TestDetectCommand:
    def test_detect(self, fedora_host):
        result = CliRunner().invoke(cli, ["detect"])
        assert result.exit_code == 0
        assert "Fedora" in result.output
        assert FEDORA_RELEASE in result.output

    def test_detect_json(self, fedora_host):
        result = CliRunner().invoke(cli, ["detect", "--json"])
        data = json.loads(result.output)
        assert data["variant"] == "fedora"
        assert data["markers"] == [FEDORA_RELEASE]


class TestPlanCommand:
    def test_plan(self, fedora_host, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "provision.yml").write_text("app_name: demo\n")
        (tmp_path / "requirements.txt").write_text("requests\n")

        result = CliRunner().invoke(cli, ["plan"])

        assert result.exit_code == 0
        assert "Plan: Fedora" in result.output
        assert "requests" in result.output
        assert "./demo start" in result.output

    def test_plan_named_variant(self, fedora_host, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)

        result = CliRunner().invoke(cli, ["plan", "--variant", "gentoo"])

        assert result.exit_code == 0
        assert "Plan: Gentoo" in result.output
        assert "System packages:" in result.output

    def test_plan_unknown_variant(self, fedora_host, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)

        result = CliRunner().invoke(cli, ["plan", "--variant", "beos"])

        assert result.exit_code == 1
        assert "Unknown variant: beos" in result.output
        assert "raspberry-pi-arch" in result.output

    def test_plan_unreadable_manifest(self, fedora_host, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "requirements.txt").mkdir()

        result = CliRunner().invoke(cli, ["plan"])

        assert result.exit_code == 1
        assert "Cannot read dependency manifest" in result.output


class TestRunCommand:
    def test_passthrough_and_yes(self, fedora_host, recorded_provision, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        calls, _ = recorded_provision

        result = CliRunner().invoke(cli, ["run", "--yes", "--disable-open-browser", "-k", "0.0.0.0"])

        assert result.exit_code == 0
        assert calls[0]["passthrough"] == ("--disable-open-browser", "-k", "0.0.0.0")
        assert calls[0]["gate"].assume_yes
        assert calls[0]["signals"].markers == {FEDORA_RELEASE: ""}

    def test_hint_forwarded(self, fedora_host, recorded_provision, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        calls, _ = recorded_provision

        CliRunner().invoke(cli, ["run", "--hint", "raspberry-pi"])

        assert calls[0]["signals"].hint == "raspberry-pi"
        assert not calls[0]["gate"].assume_yes

    def test_aborted_exits_nonzero(self, fedora_host, recorded_provision, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _, outcome = recorded_provision
        outcome["result"] = ProvisioningResult.aborted("Fedora", "dnf failed")

        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "dnf failed" in result.output

    def test_no_match_exits_zero(self, fedora_host, recorded_provision, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        _, outcome = recorded_provision
        outcome["result"] = ProvisioningResult.no_match()

        result = CliRunner().invoke(cli, ["run"])

        assert result.exit_code == 0

    def test_json_result(self, fedora_host, recorded_provision, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        result = CliRunner().invoke(cli, ["run", "--json"])

        assert json.loads(result.output)["status"] == "completed"

    def test_bad_config(self, tmp_path: Path):
        bad = tmp_path / "provision.yml"
        bad.write_text("app_name: [oops\n")

        result = CliRunner().invoke(cli, ["--config", str(bad), "run"])

        assert result.exit_code == 1
        assert "Invalid YAML" in result.output
