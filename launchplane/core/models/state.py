"""
Client-side state models — offline tracking.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from launchplane.core.models.service import Service


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class OfflineState(BaseModel):
    """Discovery health as observed by the offline reconciler.

    ``is_offline`` only becomes true once ``consecutive_failures`` reaches
    the threshold; any successful discovery resets both.
    """

    is_offline: bool = False
    consecutive_failures: int = Field(default=0, ge=0)
    last_successful_snapshot: list[Service] = Field(default_factory=list)
    last_successful_refresh: str | None = None
    last_error: str | None = None

    def mark_success(self, services: list[Service]) -> None:
        self.is_offline = False
        self.consecutive_failures = 0
        self.last_successful_snapshot = services
        self.last_successful_refresh = _now_iso()
        self.last_error = None
