"""
System extensions — ``systemextensionsctl list`` parsing.

Output groups rows under category headers::

    2 extension(s)
    --- com.apple.system_extension.network_extension
    enabled active  teamID      bundleID (version)  name    [state]
    *       *       ABCDE12345  com.example.vpn (1.2/3) VPN [activated enabled]

The same bundle can appear under several categories; rows are merged
by bundle id with the keep_most_active policy.

Listing is secondary to discovery: any failure yields an empty list.
"""

from __future__ import annotations

import logging
import re

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.core.models.service import (
    Classification,
    ExtensionState,
    ProtectionStatus,
    Service,
    ServiceDomain,
    ServiceStatus,
    ServiceType,
)
from launchplane.core.services.launchctl.classifier import VENDOR_PREFIX

logger = logging.getLogger(__name__)

SYSTEMEXTENSIONSCTL = "systemextensionsctl"

_EXTENSION_ROW = re.compile(
    r"^\s*(?P<enabled>enabled|disabled|\*)?\s*"
    r"(?P<active>active|inactive|terminated|waiting|\*)?\s*"
    r"(?P<team>[A-Z0-9]{10})?\s+"
    r"(?P<bundle>[\w-]+(?:\.[\w-]+)+)"
    r"(?:\s+[\[(](?P<version>[^\])]+)[\])])?"
)
_COUNT_LINE = re.compile(r"^\d+\s+extension", re.I)
_STATE_TAG = re.compile(r"\[(?P<tag>[^\]]+)\]\s*$")

# Trailing ``[state]`` tag, used when the active column is blank
_TAG_ACTIVITY = (
    ("activated enabled", "active"),
    ("waiting", "waiting"),
    ("terminated", "terminated"),
    ("uninstall", "inactive"),
)

# Higher wins when the same bundle is listed more than once
STATUS_RANK = {
    ServiceStatus.RUNNING: 4,
    ServiceStatus.STOPPED: 3,
    ServiceStatus.DISABLED: 2,
    ServiceStatus.ERROR: 1,
    ServiceStatus.UNKNOWN: 0,
}

_STATE_MAP = {
    "active": ExtensionState.ACTIVATED_ENABLED,
    "waiting": ExtensionState.ACTIVATED_WAITING,
    "terminated": ExtensionState.TERMINATED,
    "inactive": ExtensionState.UNINSTALLED,
}


def extension_status(enabled: str | None, active: str | None) -> ServiceStatus:
    if enabled == "disabled":
        return ServiceStatus.DISABLED
    if active == "active":
        return ServiceStatus.RUNNING
    if active == "terminated":
        return ServiceStatus.ERROR
    if active == "waiting":
        return ServiceStatus.STOPPED
    return ServiceStatus.UNKNOWN


def _is_header(line: str) -> bool:
    lower = line.lower()
    return "bundleid" in lower or "teamid" in lower or bool(_COUNT_LINE.match(line.strip()))


def _activity_from_tag(line: str) -> str | None:
    tag = _STATE_TAG.search(line)
    if not tag:
        return None
    text = tag["tag"].lower()
    for needle, activity in _TAG_ACTIVITY:
        if needle in text:
            return activity
    return None


def _parse_row(line: str, category: str) -> Service | None:
    match = _EXTENSION_ROW.match(line)
    if not match:
        return None

    # ``*`` in a state column marks the positive state
    enabled = "enabled" if match["enabled"] == "*" else match["enabled"]
    active = "active" if match["active"] == "*" else match["active"] or _activity_from_tag(line)
    bundle = match["bundle"]

    return Service(
        id=f"sysext-{bundle}",
        label=bundle,
        display_name=bundle.rsplit(".", 1)[-1] or bundle,
        type=ServiceType.EXTENSION,
        domain=ServiceDomain.SYSTEM,
        status=extension_status(enabled, active),
        enabled=enabled == "enabled",
        protection=ProtectionStatus.SYSTEM_OWNED,
        is_vendor_owned=bundle.startswith(VENDOR_PREFIX),
        requires_root=True,
        classification=Classification.CONFIRMED,
        team_id=match["team"],
        version=match["version"],
        extension_state=_STATE_MAP.get(active or ""),
        categories=[category] if category else [],
    )


def keep_most_active(existing: Service, candidate: Service) -> Service:
    """Extension dedup policy: keep the more active record, union the categories."""
    winner = existing
    if STATUS_RANK[candidate.status] > STATUS_RANK[existing.status]:
        winner = candidate

    categories = list(existing.categories)
    for category in candidate.categories:
        if category not in categories:
            categories.append(category)

    if categories == winner.categories:
        return winner
    return winner.model_copy(update={"categories": categories})


def parse_extension_list(output: str) -> list[Service]:
    """Parse ``systemextensionsctl list`` into deduplicated Services."""
    merged: dict[str, Service] = {}
    category = ""

    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith("---"):
            category = line.lstrip("-").strip()
            continue
        if _is_header(line):
            continue

        extension = _parse_row(line, category)
        if extension is None:
            continue

        previous = merged.get(extension.id)
        merged[extension.id] = extension if previous is None else keep_most_active(previous, extension)

    return list(merged.values())


async def list_extensions(executor: CommandExecutor) -> list[Service]:
    """List system extensions; never raises."""
    result = await executor.exec(SYSTEMEXTENSIONSCTL, ["list"])
    if result.exit_code != 0:
        logger.warning("Failed to list system extensions: %s", result.stderr.strip())
        return []
    return parse_extension_list(result.stdout)
