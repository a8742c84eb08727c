"""
Filtering and sorting of a service snapshot (used by the CLI).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum

from launchplane.core.models.service import (
    ProtectionStatus,
    Service,
    ServiceDomain,
    ServiceStatus,
    ServiceType,
)
from launchplane.core.services.fuzzy import search


class SortField(StrEnum):
    LABEL = "label"
    STATUS = "status"
    TYPE = "type"
    DOMAIN = "domain"
    PID = "pid"


@dataclass
class FilterOptions:
    """None means "all" for the enum filters."""

    type: ServiceType | None = None
    domain: ServiceDomain | None = None
    status: ServiceStatus | None = None
    hide_vendor: bool = False
    hide_protected: bool = False
    query: str = ""


@dataclass
class SortOptions:
    field: SortField = SortField.LABEL
    descending: bool = False


def _passes(service: Service, options: FilterOptions) -> bool:
    if options.type is not None and service.type != options.type:
        return False
    if options.domain is not None and service.domain != options.domain:
        return False
    if options.status is not None and service.status != options.status:
        return False
    if options.hide_vendor and service.is_vendor_owned:
        return False
    # Anything not "normal" counts as protected here, including system-owned
    return not (options.hide_protected and service.protection != ProtectionStatus.NORMAL)


def filter_services(services: list[Service], options: FilterOptions) -> list[Service]:
    """Apply the filters; with a query, results are ranked by fuzzy score."""
    kept = [service for service in services if _passes(service, options)]
    if not options.query:
        return kept
    return [service for service, _ in search(kept, options.query)]


def _sort_key(field: SortField):
    if field == SortField.PID:
        # Services without a pid sort last
        return lambda s: s.pid if s.pid is not None else math.inf
    if field == SortField.LABEL:
        return lambda s: s.label.lower()
    return lambda s: str(getattr(s, field.value))


def sort_services(services: list[Service], options: SortOptions) -> list[Service]:
    return sorted(services, key=_sort_key(options.field), reverse=options.descending)
