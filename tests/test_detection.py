"""
Tests for host detection — signal capture, predicates, registry order.
"""

from pathlib import Path

import pytest

from hostprep.core.data.variants import VARIANTS
from hostprep.core.errors import DetectionInconclusive
from hostprep.core.models.host import HostSignals
from hostprep.core.models.step import Variant
from hostprep.core.services.detection import (
    REGISTRY,
    build_variant_table,
    detect_variant,
    get_variant,
    registry_names,
    select_variant,
)
from hostprep.core.services.host_signals import (
    ARCH_RELEASE,
    FEDORA_RELEASE,
    GENTOO_RELEASE,
    MANJARO_RELEASE,
    OS_RELEASE,
    SLACKWARE_VERSION,
    capture_host_signals,
    read_markers,
)

# ── Registry Tests ───────────────────────────────────────────────────


class TestRegistry:
    def test_priority_order(self):
        assert registry_names() == [
            "macos",
            "raspberry-pi-arch",
            "arch",
            "gentoo",
            "fedora",
            "slackware",
            "raspbian",
            "ubuntu",
        ]

    def test_registry_is_built_from_variants(self):
        assert REGISTRY == VARIANTS

    def test_duplicate_names_rejected(self):
        v = Variant(name="dup", label="Dup", predicate=lambda s: True)
        with pytest.raises(ValueError, match="dup"):
            build_variant_table([v, v])

    def test_get_variant(self):
        assert get_variant("fedora").label == "Fedora"
        assert get_variant("beos") is None

    def test_every_variant_has_steps(self):
        for variant in REGISTRY:
            assert variant.steps, variant.name


# ── Detection Tests ──────────────────────────────────────────────────


class TestDetectVariant:
    @pytest.mark.parametrize(
        "markers,expected",
        [
            ({ARCH_RELEASE: ""}, "arch"),
            ({MANJARO_RELEASE: "Manjaro Linux"}, "arch"),
            ({GENTOO_RELEASE: "Gentoo Base System release 2.14"}, "gentoo"),
            ({FEDORA_RELEASE: "Fedora release 39"}, "fedora"),
            ({SLACKWARE_VERSION: "Slackware 15.0"}, "slackware"),
            ({OS_RELEASE: 'NAME="Raspbian GNU/Linux"'}, "raspbian"),
            ({OS_RELEASE: 'NAME="Ubuntu"'}, "ubuntu"),
            ({}, "ubuntu"),
        ],
    )
    def test_linux_markers(self, make_signals, markers, expected):
        assert detect_variant(make_signals(markers=markers)).name == expected

    def test_macos(self, make_signals):
        assert detect_variant(make_signals(platform="darwin")).name == "macos"

    def test_macos_wins_over_linux_markers(self, make_signals):
        signals = make_signals(platform="darwin", markers=[ARCH_RELEASE])
        assert detect_variant(signals).name == "macos"

    def test_arch_on_raspberry_pi_kernel(self, make_signals):
        signals = make_signals(markers=[ARCH_RELEASE], kernel="Linux alarmpi 6.1.21-1-rpi-ARCH armv7l")
        assert detect_variant(signals).name == "raspberry-pi-arch"

    def test_arch_with_raspberry_pi_hint(self, make_signals):
        signals = make_signals(markers=[ARCH_RELEASE], hint="raspberry-pi")
        assert detect_variant(signals).name == "raspberry-pi-arch"

    def test_alarmpi_kernel_without_arch_marker_is_not_arch(self, make_signals):
        signals = make_signals(kernel="Linux alarmpi 6.1.21 armv7l")
        assert detect_variant(signals).name == "ubuntu"

    def test_raspberry_pi_hint_on_debian(self, make_signals):
        signals = make_signals(markers={OS_RELEASE: 'NAME="Debian"'}, hint="Raspberry-Pi")
        assert detect_variant(signals).name == "raspbian"

    def test_fedora_before_raspbian(self, make_signals):
        signals = make_signals(markers={FEDORA_RELEASE: "", OS_RELEASE: "Raspbian"})
        assert detect_variant(signals).name == "fedora"

    def test_unknown_platform(self, make_signals):
        assert detect_variant(make_signals(platform="win32")) is None

    def test_first_match_stops_evaluation(self):
        evaluated: list[str] = []

        def predicate(name: str, result: bool):
            def _p(signals: HostSignals) -> bool:
                evaluated.append(name)
                return result
            return _p

        registry = build_variant_table([
            Variant(name="a", label="A", predicate=predicate("a", False)),
            Variant(name="b", label="B", predicate=predicate("b", True)),
            Variant(name="c", label="C", predicate=predicate("c", True)),
        ])
        assert detect_variant(HostSignals(platform="linux"), registry).name == "b"
        assert evaluated == ["a", "b"]

    def test_deterministic(self, make_signals):
        signals = make_signals(markers={OS_RELEASE: "Raspbian"}, hint="raspberry-pi")
        assert detect_variant(signals) is detect_variant(signals)

    def test_appending_low_priority_variant_is_order_stable(self, make_signals):
        catch_all = Variant(name="anything", label="Anything", predicate=lambda s: True)
        extended = build_variant_table([*REGISTRY, catch_all])
        for signals in (
            make_signals(platform="darwin"),
            make_signals(markers=[GENTOO_RELEASE]),
            make_signals(),
        ):
            assert detect_variant(signals, extended) is detect_variant(signals)
        assert detect_variant(make_signals(platform="win32"), extended) is catch_all

    def test_select_raises_when_nothing_matches(self, make_signals):
        with pytest.raises(DetectionInconclusive, match="win32"):
            select_variant(make_signals(platform="win32"))


# ── Signal Capture Tests ─────────────────────────────────────────────


class TestCaptureHostSignals:
    def _make_root(self, tmp_path: Path, files: dict[str, str]) -> Path:
        for name, content in files.items():
            path = tmp_path / name.lstrip("/")
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return tmp_path

    def test_reads_markers_under_root(self, tmp_path: Path):
        root = self._make_root(tmp_path, {
            FEDORA_RELEASE: "Fedora release 39\n",
            "/etc/hostname": "box\n",
        })
        markers = read_markers(root)
        assert markers == {FEDORA_RELEASE: "Fedora release 39\n"}

    def test_missing_root_yields_no_markers(self, tmp_path: Path):
        assert read_markers(tmp_path / "nope") == {}

    def test_capture_with_overrides(self, tmp_path: Path):
        root = self._make_root(tmp_path, {ARCH_RELEASE: ""})
        signals = capture_host_signals(
            root=root,
            hint="raspberry-pi",
            platform_id="linux",
            kernel="Linux pi 6.1",
        )
        assert signals.platform == "linux"
        assert signals.kernel == "Linux pi 6.1"
        assert signals.has_marker(ARCH_RELEASE)
        assert detect_variant(signals).name == "raspberry-pi-arch"

    def test_empty_hint_becomes_none(self, tmp_path: Path):
        signals = capture_host_signals(root=tmp_path, hint="", platform_id="linux", kernel="")
        assert signals.hint is None

    def test_capture_defaults_to_running_platform(self, tmp_path: Path):
        import sys

        signals = capture_host_signals(root=tmp_path)
        assert signals.platform == sys.platform
        assert signals.kernel
