"""
Domain models — Pydantic types for the control plane.

All models are re-exported here for convenient access:

    from launchplane.core.models import Service, ActionResult, OfflineState
"""

from launchplane.core.models.action import (
    ActionResult,
    CommandResult,
    PrivilegedResult,
    RetryInfo,
    ServiceAction,
)
from launchplane.core.models.service import (
    Classification,
    ExtensionState,
    PlistMetadata,
    ProtectionStatus,
    Service,
    ServiceDetail,
    ServiceDomain,
    ServiceStatus,
    ServiceType,
    derive_status,
)
from launchplane.core.models.state import OfflineState

__all__ = [
    # action.py
    "ActionResult",
    "CommandResult",
    "PrivilegedResult",
    "RetryInfo",
    "ServiceAction",
    # service.py
    "Classification",
    "ExtensionState",
    "PlistMetadata",
    "ProtectionStatus",
    "Service",
    "ServiceDetail",
    "ServiceDomain",
    "ServiceStatus",
    "ServiceType",
    "derive_status",
    # state.py
    "OfflineState",
]
