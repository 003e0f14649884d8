"""
Domain models: Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from workstation.core.models import Action, Receipt, HostFacts, WorkstationConfig
"""

from workstation.core.models.action import Action, Receipt
from workstation.core.models.config import (
    AptRepository,
    CompilerProfile,
    ExtensionSettings,
    GrubSettings,
    PackageSettings,
    PathSettings,
    TargetOS,
    WorkstationConfig,
    WrapperSettings,
)
from workstation.core.models.host import HostFacts
from workstation.core.models.state import ProvisionState, RunRecord, StepState
from workstation.core.models.step import ProvisionStep
from workstation.core.models.template import GeneratedFile

__all__ = [
    # action.py
    "Action",
    # config.py
    "AptRepository",
    "CompilerProfile",
    "ExtensionSettings",
    # template.py
    "GeneratedFile",
    "GrubSettings",
    # host.py
    "HostFacts",
    "PackageSettings",
    "PathSettings",
    # state.py
    "ProvisionState",
    # step.py
    "ProvisionStep",
    "Receipt",
    "RunRecord",
    "StepState",
    "TargetOS",
    "WorkstationConfig",
    "WrapperSettings",
]
