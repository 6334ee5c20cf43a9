"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from hostprep.core.models import HostSignals, Step, Variant, ProvisioningResult
"""

from hostprep.core.models.host import HostSignals
from hostprep.core.models.manifest import PackageManifest
from hostprep.core.models.result import ProvisioningResult, StepReceipt
from hostprep.core.models.step import Criticality, Step, StepKind, Variant

__all__ = [
    # step.py
    "Criticality",
    # host.py
    "HostSignals",
    # manifest.py
    "PackageManifest",
    # result.py
    "ProvisioningResult",
    "Step",
    "StepKind",
    "StepReceipt",
    "Variant",
]
