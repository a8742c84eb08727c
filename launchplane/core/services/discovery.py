"""
Service discovery — build a snapshot of every launchd service and
system extension, then refine individual services on demand.

Discovery is two-phase:

    discover()      — one ``launchctl list`` pass; type/domain/root are
                      guessed from the label (classification=provisional)
    fetch_detail()  — plist lookup + ``launchctl print`` for one service;
                      returns a ServiceDetail (classification=confirmed)
                      that Service.refine() applies

A failing ``launchctl list`` raises DiscoveryError. A failing extension
listing only drops the extensions.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.core.models.service import (
    Classification,
    PlistMetadata,
    Service,
    ServiceDetail,
    ServiceDomain,
    ServiceType,
    derive_status,
)
from launchplane.core.services.extensions import list_extensions
from launchplane.core.services.launchctl.actions import LAUNCHCTL, service_target
from launchplane.core.services.launchctl.classifier import (
    is_vendor_owned,
    protection_status,
    requires_root,
)
from launchplane.core.services.launchctl.parsers import parse_list, parse_print
from launchplane.core.services.launchctl.validation import is_valid_service_label
from launchplane.core.services.plist import load_metadata

logger = logging.getLogger(__name__)

SYSTEM_PLIST_DIRS = (
    "/System/Library/LaunchDaemons",
    "/System/Library/LaunchAgents",
    "/Library/LaunchDaemons",
    "/Library/LaunchAgents",
)


class DiscoveryError(Exception):
    """The primary service listing failed."""


def display_name_for(label: str) -> str:
    return label.rsplit(".", 1)[-1] or label


def provisional_service(label: str, pid: int | None, exit_status: int | None) -> Service:
    """Label-only first guess; refined later by fetch_detail()."""
    is_daemon = "daemon" in label
    domain = ServiceDomain.USER
    return Service(
        id=f"{domain}-{label}",
        label=label,
        display_name=display_name_for(label),
        type=ServiceType.DAEMON if is_daemon else ServiceType.AGENT,
        domain=domain,
        status=derive_status(pid, exit_status),
        pid=pid,
        exit_status=exit_status,
        protection=protection_status(label),
        is_vendor_owned=is_vendor_owned(label),
        requires_root=is_daemon,
        classification=Classification.PROVISIONAL,
    )


def refine_kind(service: Service, file_path: str | None) -> tuple[ServiceType, ServiceDomain]:
    """Type and domain from the definition file's location.

    LaunchAgents always run in the gui domain, even when installed
    under /Library.
    """
    if not file_path:
        return service.type, service.domain
    if "LaunchDaemons" in file_path:
        return ServiceType.DAEMON, ServiceDomain.SYSTEM
    return ServiceType.AGENT, ServiceDomain.GUI


class ServiceDiscovery:
    """Discover services through launchctl and systemextensionsctl."""

    def __init__(self, executor: CommandExecutor, search_dirs: list[str] | None = None):
        self._executor = executor
        self._context = executor.context
        if search_dirs is None:
            search_dirs = [*SYSTEM_PLIST_DIRS, self._context.user_agents_dir]
        self._search_dirs = search_dirs

    @property
    def search_dirs(self) -> list[str]:
        return list(self._search_dirs)

    async def list_launchd(self) -> list[Service]:
        result = await self._executor.exec(LAUNCHCTL, ["list"])
        if result.exit_code != 0:
            raise DiscoveryError(f"Failed to list services: {result.stderr.strip() or 'Unknown error'}")

        services: list[Service] = []
        seen: set[str] = set()
        for entry in parse_list(result.stdout):
            if entry.label in seen:
                continue
            seen.add(entry.label)
            services.append(provisional_service(entry.label, entry.pid, entry.exit_status))
        return services

    async def discover(self) -> list[Service]:
        """Full snapshot: launchd services plus system extensions, sorted by label.

        Raises:
            DiscoveryError: If ``launchctl list`` fails.
        """
        launchd, extensions = await asyncio.gather(
            self.list_launchd(),
            list_extensions(self._executor),
        )
        services = sorted([*launchd, *extensions], key=lambda s: s.label.lower())
        logger.debug(
            "Discovered %d services (%d launchd, %d extensions)",
            len(services),
            len(launchd),
            len(extensions),
        )
        return services

    def find_plist_path(self, label: str) -> str | None:
        for directory in self._search_dirs:
            candidate = Path(directory).expanduser() / f"{label}.plist"
            if candidate.is_file():
                return str(candidate)
        return None

    async def fetch_print_info(self, domain: ServiceDomain, label: str) -> dict[str, str]:
        """Parsed ``launchctl print`` output; empty when the command fails."""
        target = service_target(domain, label, self._context.uid)
        result = await self._executor.exec(LAUNCHCTL, ["print", target])
        if result.exit_code != 0:
            logger.debug("launchctl print %s failed: %s", target, result.stderr.strip())
            return {}
        return parse_print(result.stdout)

    async def fetch_detail(self, service: Service) -> ServiceDetail:
        """Lazily resolve file path, plist metadata and confirmed classification."""
        if service.is_extension or not is_valid_service_label(service.label):
            return ServiceDetail(classification=service.classification)

        label = service.label
        file_path = self.find_plist_path(label)
        service_type, domain = refine_kind(service, file_path)

        print_info = await self.fetch_print_info(domain, label)
        if file_path is None and print_info.get("path", "").endswith(".plist"):
            file_path = print_info["path"]
            service_type, domain = refine_kind(service, file_path)

        metadata, description = await load_metadata(self._executor, file_path)
        if metadata is None and print_info.get("program"):
            metadata = PlistMetadata(program=print_info["program"])

        return ServiceDetail(
            file_path=file_path,
            description=description,
            plist=metadata,
            print_info=print_info,
            type=service_type,
            domain=domain,
            protection=protection_status(label, file_path),
            is_vendor_owned=is_vendor_owned(label, file_path),
            requires_root=requires_root(domain, file_path, self._context),
            classification=Classification.CONFIRMED,
        )
