"""
Configuration loader — reads provision.yml into a ProvisionConfig.

The file is optional: without one, every setting takes its default
and paths resolve against the working directory. When present it is
parsed with PyYAML and validated against the Pydantic schema.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Looked up in the working directory and its parents
PROVISION_CONFIG_FILE = "provision.yml"


class ConfigError(Exception):
    """Raised when provisioning configuration is invalid."""


class ProvisionConfig(BaseModel):
    """Settings for one application checkout.

    All relative paths are resolved against ``root`` (the directory
    holding provision.yml, or the working directory).
    """

    model_config = ConfigDict(extra="forbid")

    app_name: str = "app"
    launcher: str | None = None          # default: ./<app_name>
    env_path: str = "env"
    python_version: str = "3"
    requirements: str = "requirements.txt"
    changelog: str = "changelog"
    log_file: str = "logs/production.log"

    root: Path = Field(default_factory=Path.cwd, exclude=True)

    @property
    def launcher_command(self) -> str:
        return self.launcher or f"./{self.app_name}"

    @property
    def interpreter(self) -> str:
        """Interpreter name the isolated environment is pinned to."""
        return f"python{self.python_version}"

    def resolve(self, relative: str) -> Path:
        p = Path(relative).expanduser()
        return p if p.is_absolute() else self.root / p

    @property
    def env_dir(self) -> Path:
        return self.resolve(self.env_path)

    @property
    def requirements_file(self) -> Path:
        return self.resolve(self.requirements)

    @property
    def changelog_file(self) -> Path:
        return self.resolve(self.changelog)


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Nearest provision.yml in ``start_dir`` (default: cwd) or above it.

    Lets ``hostprep`` run from any subdirectory of the application
    checkout. Returns None when no ancestor has one.
    """
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / PROVISION_CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> ProvisionConfig:
    """Load and validate provisioning configuration.

    Args:
        path: Explicit path to provision.yml. If None, searches upward
            and falls back to defaults when nothing is found.

    Returns:
        Validated ProvisionConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found, using defaults", PROVISION_CONFIG_FILE)
        return ProvisionConfig(root=Path.cwd())

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return ProvisionConfig(root=Path.cwd())

    logger.debug("Loading provisioning config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "provision" key or be flat
    settings = data.get("provision", data)
    if not isinstance(settings, dict):
        raise ConfigError(f"Expected 'provision' to be a mapping in {path}")

    try:
        config = ProvisionConfig.model_validate({**settings, "root": path.parent.resolve()})
    except Exception as e:
        raise ConfigError(f"Invalid provisioning configuration: {e}") from e

    logger.info("Loaded config for '%s' from %s", config.app_name, path)
    return config
