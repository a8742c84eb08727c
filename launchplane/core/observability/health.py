"""
Health checker — is this host able to discover and control services?

Components:
    tools        required/optional OS utilities on PATH
    discovery    online/offline state of the reconciler
    metadata     metadata cache occupancy and load errors
    privileges   root, interactive dialog availability

Used by the CLI ``health`` command.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from launchplane.adapters.shell.privilege import is_interactive_context
from launchplane.core.context import ControlContext
from launchplane.core.reliability.offline import OfflineReconciler
from launchplane.core.services.metadata_cache import MetadataCache

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("launchctl",)
OPTIONAL_TOOLS = ("sudo", "plutil", "systemextensionsctl", "sw_vers", "osascript")

Which = Callable[[str], str | None]


@dataclass
class ComponentHealth:
    """Health of a single component."""

    name: str
    status: str = "unknown"  # healthy, degraded, unhealthy, unknown
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class SystemHealth:
    """Aggregate health; the worst component status wins."""

    status: str = "healthy"
    timestamp: str = ""
    components: list[ComponentHealth] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(UTC).isoformat()

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        self._recalculate()

    def _recalculate(self) -> None:
        statuses = [c.status for c in self.components]
        if "unhealthy" in statuses:
            self.status = "unhealthy"
        elif "degraded" in statuses:
            self.status = "degraded"
        elif all(s == "healthy" for s in statuses):
            self.status = "healthy"
        else:
            self.status = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "components": [c.to_dict() for c in self.components],
        }


def check_tools(which: Which = shutil.which, mock: bool = False) -> ComponentHealth:
    """Check that the service-management utilities are installed."""
    found = {tool: which(tool) for tool in (*REQUIRED_TOOLS, *OPTIONAL_TOOLS)}
    missing_required = [t for t in REQUIRED_TOOLS if not found[t]]
    missing_optional = [t for t in OPTIONAL_TOOLS if not found[t]]

    if mock:
        return ComponentHealth(
            name="tools",
            status="healthy",
            message="Mock mode, no system tools used",
            details=found,
        )
    if missing_required:
        status = "unhealthy"
        message = f"Missing required: {', '.join(missing_required)}"
    elif missing_optional:
        status = "degraded"
        message = f"Missing optional: {', '.join(missing_optional)}"
    else:
        status = "healthy"
        message = "All tools available"

    return ComponentHealth(name="tools", status=status, message=message, details=found)


def check_discovery(reconciler: OfflineReconciler) -> ComponentHealth:
    """Online, offline with a cached snapshot, or offline with nothing to show."""
    details = reconciler.to_dict()
    if not reconciler.is_offline:
        failures = reconciler.state.consecutive_failures
        if failures:
            return ComponentHealth(
                name="discovery",
                status="degraded",
                message=f"{failures} recent failure(s)",
                details=details,
            )
        return ComponentHealth(name="discovery", status="healthy", message="Online", details=details)

    if reconciler.has_snapshot:
        return ComponentHealth(
            name="discovery",
            status="degraded",
            message="Offline, serving cached services",
            details=details,
        )
    return ComponentHealth(
        name="discovery",
        status="unhealthy",
        message=f"Offline: {reconciler.state.last_error}",
        details=details,
    )


def check_metadata_cache(cache: MetadataCache) -> ComponentHealth:
    return ComponentHealth(
        name="metadata_cache",
        status="healthy",
        message=f"{len(cache)}/{cache.max_size} entries",
        details={"size": len(cache), "max_size": cache.max_size},
    )


def check_privileges(context: ControlContext) -> ComponentHealth:
    """Report which escalation paths are reachable."""
    interactive = is_interactive_context(context)
    details = {"root": context.is_root, "interactive": interactive, "uid": context.uid}
    if context.is_root:
        message = "Running as root"
    elif interactive:
        message = "Elevation via native dialog"
    else:
        message = "Headless; elevation needs cached credentials or a password"
    return ComponentHealth(name="privileges", status="healthy", message=message, details=details)


def check_system_health(
    context: ControlContext,
    reconciler: OfflineReconciler | None = None,
    cache: MetadataCache | None = None,
    which: Which = shutil.which,
    mock: bool = False,
) -> SystemHealth:
    """Run all health checks and return aggregate status."""
    health = SystemHealth()
    health.add(check_tools(which, mock=mock))
    health.add(check_privileges(context))

    if reconciler is not None:
        health.add(check_discovery(reconciler))

    if cache is not None:
        health.add(check_metadata_cache(cache))

    logger.debug("System health: %s", health.status)
    return health
