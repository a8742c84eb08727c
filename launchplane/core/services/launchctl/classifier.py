"""
Service classification — protection, vendor ownership, root requirement.

Pure functions of a label and an optional definition-file path. The
predicates are independent: a service can be system-owned without
requiring root, and require root without being protected.

    Location                     | Domain | Root required?
    -----------------------------|--------|----------------
    ~/Library/LaunchAgents       | user   | no
    /Library/LaunchAgents        | system | yes
    /Library/LaunchDaemons       | system | yes
    /System/Library/*            | system | SIP protected
"""

from __future__ import annotations

from launchplane.core.context import ControlContext
from launchplane.core.models.service import ProtectionStatus, ServiceDomain

VENDOR_PREFIX = "com.apple."
VENDOR_SYSTEM_ROOT = "/System/Library/"
PROTECTED_ROOT = "/System/"
SYSTEM_ROOTS = ("/Library/", "/System/")
USER_AGENTS_SUFFIX = "/Library/LaunchAgents"

IMMUTABLE_SERVICES = (
    "com.apple.SystemConfiguration",
    "com.apple.launchd",
    "com.apple.kextd",
)


def protection_status(label: str, file_path: str | None = None) -> ProtectionStatus:
    """Protection level, first matching rule wins."""
    if file_path and file_path.startswith(PROTECTED_ROOT):
        return ProtectionStatus.SIP_PROTECTED
    # Checked before the allowlist, so allowlisted vendor labels without a
    # protected path are reported as system-owned.
    if label.startswith(VENDOR_PREFIX):
        return ProtectionStatus.SYSTEM_OWNED
    if label.startswith(IMMUTABLE_SERVICES):
        return ProtectionStatus.IMMUTABLE
    return ProtectionStatus.NORMAL


def is_vendor_owned(label: str, file_path: str | None = None) -> bool:
    if label.startswith(VENDOR_PREFIX):
        return True
    return bool(file_path and VENDOR_SYSTEM_ROOT in file_path)


def is_user_agent_path(file_path: str, context: ControlContext | None = None) -> bool:
    if file_path.startswith("~" + USER_AGENTS_SUFFIX):
        return True
    home = context.home if context is not None else ""
    return bool(home) and file_path.startswith(home + USER_AGENTS_SUFFIX)


def requires_root(
    domain: ServiceDomain,
    file_path: str | None = None,
    context: ControlContext | None = None,
) -> bool:
    """Whether acting on the service needs elevated privileges."""
    if file_path and is_user_agent_path(file_path, context):
        return False
    if domain == ServiceDomain.SYSTEM:
        return True
    return bool(file_path and file_path.startswith(SYSTEM_ROOTS))


def should_elevate(needs_root: bool, context: ControlContext) -> bool:
    """Elevation is needed only when root is required and we are not root."""
    return needs_root and not context.is_root
