"""
HostSignals — the immutable snapshot a run detects against.

Captured once at startup (see ``core/services/host_signals.py``).
Predicates in the variant registry only ever look at this object;
they never touch the filesystem themselves.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class HostSignals(BaseModel):
    """Platform-identifying facts gathered once per run."""

    model_config = ConfigDict(frozen=True)

    platform: str                   # sys.platform: linux, darwin, win32, ...
    kernel: str = ""                # uname string (system node release version machine)
    markers: Mapping[str, str] = Field(default_factory=dict, validate_default=True)  # path → content
    hint: str | None = None         # caller-supplied variant hint, e.g. "raspberry-pi"

    @field_validator("markers", mode="after")
    @classmethod
    def _freeze_markers(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("markers")
    def _dump_markers(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @property
    def is_linux(self) -> bool:
        return self.platform.startswith("linux")

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    def has_marker(self, path: str) -> bool:
        """Whether a distribution marker file was present at capture time."""
        return path in self.markers

    def marker_contains(self, path: str, text: str) -> bool:
        """Whether a captured marker file contains ``text``."""
        return text in self.markers.get(path, "")

    def hinted(self, token: str) -> bool:
        """Case-insensitive comparison against the caller's hint."""
        return bool(self.hint) and self.hint.strip().lower() == token.lower()
