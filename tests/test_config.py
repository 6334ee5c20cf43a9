"""
Tests for configuration loading — provision.yml and the requirements manifest.
"""

import textwrap
from pathlib import Path

import pytest

from hostprep.core.config.loader import (
    ConfigError,
    ProvisionConfig,
    find_config_file,
    load_config,
)
from hostprep.core.config.manifest import load_manifest, read_requirements

# ── provision.yml Tests ──────────────────────────────────────────────


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "provision.yml"
    path.write_text(textwrap.dedent("""\
        provision:
          app_name: openbazaar
          launcher: ./openbazaar
          env_path: .venv
          python_version: "3.12"
          requirements: deps/requirements.txt
    """))
    return path


class TestLoadConfig:
    def test_wrapped_settings(self, config_file: Path):
        config = load_config(config_file)
        assert config.app_name == "openbazaar"
        assert config.interpreter == "python3.12"
        assert config.root == config_file.parent.resolve()
        assert config.env_dir == config_file.parent.resolve() / ".venv"
        assert config.requirements_file == config_file.parent.resolve() / "deps" / "requirements.txt"

    def test_flat_settings(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("app_name: demo\nlog_file: /var/log/demo.log\n")
        config = load_config(path)
        assert config.app_name == "demo"
        assert config.log_file == "/var/log/demo.log"
        assert config.launcher_command == "./demo"

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("")
        config = load_config(path)
        assert config.app_name == "app"
        assert config.env_path == "env"

    def test_no_file_uses_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        isolated = tmp_path / "isolated"
        isolated.mkdir()
        monkeypatch.chdir(isolated)
        monkeypatch.setattr(
            "hostprep.core.config.loader.find_config_file", lambda start_dir=None: None,
        )
        config = load_config()
        assert config.root == isolated
        assert config.requirements_file == isolated / "requirements.txt"

    def test_explicit_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("app_name: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_unknown_key_rejected(self, tmp_path: Path):
        path = tmp_path / "provision.yml"
        path.write_text("app_name: demo\nflavour: vanilla\n")
        with pytest.raises(ConfigError, match="flavour"):
            load_config(path)


class TestFindConfigFile:
    def test_walks_upward(self, config_file: Path):
        nested = config_file.parent / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config_file.resolve()

    def test_absolute_paths_not_rebased(self, tmp_path: Path):
        config = ProvisionConfig(env_path="/opt/env", root=tmp_path)
        assert config.env_dir == Path("/opt/env")


# ── Requirements Manifest Tests ──────────────────────────────────────


class TestReadRequirements:
    def test_order_comments_and_options(self, tmp_path: Path):
        path = tmp_path / "requirements.txt"
        path.write_text(textwrap.dedent("""\
            # core
            Twisted>=16.0

            pyzmq==15.2.0  # messaging
            --index-url https://example.invalid/simple
            -r other.txt
            requests
        """))
        assert read_requirements(path) == ["Twisted>=16.0", "pyzmq==15.2.0", "requests"]

    def test_missing_file_is_empty(self, tmp_path: Path):
        assert read_requirements(tmp_path / "nope.txt") == []

    def test_undecodable_file(self, tmp_path: Path):
        path = tmp_path / "requirements.txt"
        path.write_bytes(b"caf\xe9-lib==1.0\n")
        with pytest.raises(ConfigError, match="not valid UTF-8"):
            read_requirements(path)

    def test_directory_is_not_a_manifest(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Cannot read dependency manifest"):
            read_requirements(tmp_path)

    def test_load_manifest(self, tmp_path: Path):
        path = tmp_path / "requirements.txt"
        path.write_text("a\nb\n")
        manifest = load_manifest(path, ["sqlite3"])
        assert manifest.system_packages == ["sqlite3"]
        assert manifest.application_dependencies == ["a", "b"]
