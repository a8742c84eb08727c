"""
Action and result models — the execution contract.

Lifecycle actions are requested by name and answered with an
ActionResult. Expected failures (validation, protection, auth,
command errors) are reported here, never raised.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ServiceAction(StrEnum):
    """Lifecycle verbs a caller may request."""

    START = "start"
    STOP = "stop"
    ENABLE = "enable"
    DISABLE = "disable"
    UNLOAD = "unload"
    RELOAD = "reload"


class RetryInfo(BaseModel):
    """What the retry loop did before producing a result."""

    attempts: int = Field(default=1, ge=1)
    retried: bool = False
    retry_errors: list[str] | None = None


class CommandResult(BaseModel):
    """Raw outcome of one external command."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    retry_info: RetryInfo | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class PrivilegedResult(BaseModel):
    """Uniform result of every privilege-escalation path."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    auth_cancelled: bool = False
    auth_failed: bool = False
    needs_password: bool = False
    auth_timed_out: bool = False
    path: str = ""  # direct, cached, dialog, stdin, none


class ActionResult(BaseModel):
    """Outcome of a requested lifecycle action."""

    success: bool
    message: str
    error: str | None = None
    requires_root: bool | None = None
    sip_protected: bool | None = None
    retry_info: RetryInfo | None = None
    command: str | None = None  # populated only in dry-run

    @classmethod
    def ok(cls, message: str, **kwargs: Any) -> ActionResult:
        """Create a success result."""
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failure(cls, message: str, error: str | None = None, **kwargs: Any) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, message=message, error=error, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
