"""
Service model — one background service as seen by the control plane.

A Service is an immutable value: discovery creates it, and it is only
ever *replaced* afterwards (by the diff/merge step or by refinement
once detail has been fetched), never mutated in place.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceType(StrEnum):
    """The three supported service kinds."""

    DAEMON = "daemon"
    AGENT = "agent"
    EXTENSION = "extension"


class ServiceDomain(StrEnum):
    """Scope a service runs in."""

    SYSTEM = "system"
    USER = "user"
    GUI = "gui"


class ServiceStatus(StrEnum):
    RUNNING = "running"
    STOPPED = "stopped"
    DISABLED = "disabled"
    ERROR = "error"
    UNKNOWN = "unknown"


class ProtectionStatus(StrEnum):
    NORMAL = "normal"
    SIP_PROTECTED = "sip-protected"
    SYSTEM_OWNED = "system-owned"
    IMMUTABLE = "immutable"


class Classification(StrEnum):
    """How trustworthy a service's type/domain/root fields are.

    PROVISIONAL  → guessed from the label at discovery time.
    CONFIRMED    → refined from the service's file path after a detail fetch.
    """

    PROVISIONAL = "provisional"
    CONFIRMED = "confirmed"


class ExtensionState(StrEnum):
    ACTIVATED_ENABLED = "activated_enabled"
    ACTIVATED_WAITING = "activated_waiting"
    UNINSTALLED = "uninstalled"
    TERMINATED = "terminated"


def derive_status(
    pid: int | None,
    exit_status: int | None,
    enabled: bool = True,
) -> ServiceStatus:
    """Compute a launchd service's status from its raw runtime fields."""
    if not enabled:
        return ServiceStatus.DISABLED
    if pid is not None and pid > 0:
        return ServiceStatus.RUNNING
    if exit_status is not None and exit_status != 0:
        return ServiceStatus.ERROR
    return ServiceStatus.STOPPED


class PlistMetadata(BaseModel):
    """Structured subset of a service definition file."""

    program: str | None = None
    program_arguments: list[str] = Field(default_factory=list)
    run_at_load: bool | None = None
    keep_alive: bool | dict[str, Any] | None = None
    working_directory: str | None = None
    environment_variables: dict[str, str] = Field(default_factory=dict)
    standard_out_path: str | None = None
    standard_error_path: str | None = None
    start_interval: int | None = None
    start_calendar_interval: dict[str, int] | list[dict[str, int]] | None = None
    process_type: str | None = None
    watch_paths: list[str] = Field(default_factory=list)
    queue_directories: list[str] = Field(default_factory=list)
    has_sockets: bool = False
    has_mach_services: bool = False


class ServiceDetail(BaseModel):
    """Lazily fetched, partial Service fields for one service."""

    model_config = ConfigDict(frozen=True)

    file_path: str | None = None
    description: str | None = None
    plist: PlistMetadata | None = None
    print_info: dict[str, str] = Field(default_factory=dict)
    type: ServiceType | None = None
    domain: ServiceDomain | None = None
    protection: ProtectionStatus | None = None
    is_vendor_owned: bool | None = None
    requires_root: bool | None = None
    classification: Classification = Classification.CONFIRMED

    def to_fields(self) -> dict[str, Any]:
        """Only the fields that were actually resolved, as model values (not dumped)."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }


class Service(BaseModel):
    """A discovered background service.

    ``id`` is unique within a snapshot. ``status`` of a launchd service is
    always produced by :func:`derive_status` from ``pid``, ``exit_status``
    and ``enabled``.
    """

    model_config = ConfigDict(frozen=True)

    # ── Identity ─────────────────────────────────────────────────
    id: str
    label: str
    display_name: str
    type: ServiceType
    domain: ServiceDomain

    # ── Runtime state (volatile) ─────────────────────────────────
    status: ServiceStatus
    pid: int | None = None
    exit_status: int | None = None
    enabled: bool = True
    last_error: str | None = None

    # ── Classification ───────────────────────────────────────────
    protection: ProtectionStatus = ProtectionStatus.NORMAL
    is_vendor_owned: bool = False
    requires_root: bool = False
    classification: Classification = Classification.PROVISIONAL

    # ── Lazily fetched ───────────────────────────────────────────
    file_path: str | None = None
    description: str | None = None
    plist: PlistMetadata | None = None

    # ── Extension-only ───────────────────────────────────────────
    team_id: str | None = None
    version: str | None = None
    extension_state: ExtensionState | None = None
    categories: list[str] = Field(default_factory=list)

    @property
    def is_extension(self) -> bool:
        return self.type == ServiceType.EXTENSION

    @property
    def is_protected(self) -> bool:
        """Whether lifecycle actions are refused outright."""
        return self.protection in (
            ProtectionStatus.SIP_PROTECTED,
            ProtectionStatus.IMMUTABLE,
        )

    def refine(self, detail: ServiceDetail) -> Service:
        """Return a new Service with the fetched detail applied."""
        fields = detail.to_fields()
        fields.pop("print_info", None)
        return self.model_copy(update=fields)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
