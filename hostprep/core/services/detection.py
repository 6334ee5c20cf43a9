"""
Detector/dispatcher — pick exactly one variant for the host.

Predicates are evaluated in registry order and the first match wins;
nothing after it is evaluated. No match is not an error: the run
simply has nothing to do on an unrecognised host.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from hostprep.core.data.variants import VARIANTS
from hostprep.core.errors import DetectionInconclusive
from hostprep.core.models.host import HostSignals
from hostprep.core.models.step import Variant

logger = logging.getLogger(__name__)


def build_variant_table(variants: Iterable[Variant]) -> tuple[Variant, ...]:
    """Freeze a registry, rejecting duplicate variant names."""
    table = tuple(variants)
    seen: set[str] = set()
    for variant in table:
        if variant.name in seen:
            raise ValueError(f"Duplicate variant name in registry: {variant.name}")
        seen.add(variant.name)
    return table


REGISTRY: tuple[Variant, ...] = build_variant_table(VARIANTS)


def registry_names(registry: Sequence[Variant] = REGISTRY) -> list[str]:
    """Variant names in priority order."""
    return [v.name for v in registry]


def detect_variant(
    signals: HostSignals,
    registry: Sequence[Variant] = REGISTRY,
) -> Variant | None:
    """Return the first variant whose predicate matches, or None."""
    for variant in registry:
        if variant.matches(signals):
            logger.info("Matched variant %s (%s)", variant.name, variant.label)
            return variant
        logger.debug("Variant %s does not match", variant.name)
    logger.info("No variant matched platform %s", signals.platform)
    return None


def select_variant(
    signals: HostSignals,
    registry: Sequence[Variant] = REGISTRY,
) -> Variant:
    """Like ``detect_variant`` but raises when nothing matches.

    Raises:
        DetectionInconclusive: If no predicate matched.
    """
    variant = detect_variant(signals, registry)
    if variant is None:
        raise DetectionInconclusive(f"No provisioning procedure for platform '{signals.platform}'")
    return variant


def get_variant(name: str, registry: Sequence[Variant] = REGISTRY) -> Variant | None:
    """Look up a variant by name."""
    for variant in registry:
        if variant.name == name:
            return variant
    return None
