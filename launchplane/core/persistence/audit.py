"""
Action ledger — append-only record of executed lifecycle actions.

Each non-dry-run action appends one JSON line (NDJSON). Entries are
never rewritten. Passwords never reach the ledger: only the action,
the service and the outcome are recorded.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from launchplane.core.models.action import ActionResult
from launchplane.core.models.service import Service

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """One executed action."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    action: str
    label: str
    service_id: str
    domain: str
    success: bool
    message: str
    error: str | None = None
    attempts: int = 1
    duration_ms: int = 0

    @classmethod
    def from_result(
        cls,
        action: str,
        service: Service,
        result: ActionResult,
        duration_ms: int = 0,
    ) -> AuditEntry:
        return cls(
            action=str(action),
            label=service.label,
            service_id=service.id,
            domain=service.domain.value,
            success=result.success,
            message=result.message,
            error=result.error,
            attempts=result.retry_info.attempts if result.retry_info else 1,
            duration_ms=duration_ms,
        )


class AuditWriter:
    """Append entries to an NDJSON file, creating it on first write."""

    def __init__(self, path: Path | str):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append one entry. A write failure is logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)
            return
        logger.debug("Audit entry written: %s %s", entry.action, entry.label)

    def read_all(self) -> list[AuditEntry]:
        """All readable entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        with self._path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(AuditEntry.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning("Skipping corrupt audit entry at line %d: %s", line_num, e)
        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """The last n entries, oldest first. n < 1 yields nothing."""
        if n < 1:
            return []
        return self.read_all()[-n:]
