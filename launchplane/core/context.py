"""
Control context — everything about "where are we running" in one object.

Built once by the entry point and passed to every component:

    - CLI:    main.py  → ControlContext.from_environment(settings)
    - Tests:  ControlContext(env={...}, uid=501, euid=501, home="/Users/test")

Nothing here is a module-level singleton: the retry-logging callback
and the cached OS version are fields of the instance, so separate
contexts never share state.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from launchplane.core.config.loader import Settings
from launchplane.core.reliability.retry import RetryCallback

if TYPE_CHECKING:
    from launchplane.core.services.launchctl.version import OSVersion


# Used when the process has no real uid (non-POSIX platforms)
FALLBACK_UID = 501


def _current_uid() -> int:
    getuid = getattr(os, "getuid", None)
    return getuid() if getuid is not None else FALLBACK_UID


def _current_euid() -> int:
    geteuid = getattr(os, "geteuid", None)
    return geteuid() if geteuid is not None else FALLBACK_UID


@dataclass
class ControlContext:
    """Injected runtime context.

    Args:
        env: Environment variables visible to the heuristics.
        uid: Real user id (used for per-user ``gui/<uid>`` targets).
        euid: Effective user id (0 means already privileged).
        home: Home directory of the invoking user.
        platform: ``sys.platform`` value.
        settings: Loaded settings.
        on_retry: Optional callback ``(attempt, error, delay_seconds)``.
    """

    env: Mapping[str, str] = field(default_factory=dict)
    uid: int = FALLBACK_UID
    euid: int = FALLBACK_UID
    home: str = ""
    platform: str = "darwin"
    settings: Settings = field(default_factory=Settings)
    on_retry: RetryCallback | None = None

    # ── Lazily populated ─────────────────────────────────────────
    os_version: OSVersion | None = None

    @classmethod
    def from_environment(
        cls,
        settings: Settings | None = None,
        on_retry: RetryCallback | None = None,
    ) -> ControlContext:
        """Snapshot the current process environment."""
        env = dict(os.environ)
        return cls(
            env=env,
            uid=_current_uid(),
            euid=_current_euid(),
            home=env.get("HOME") or str(Path.home()),
            platform=sys.platform,
            settings=settings or Settings(),
            on_retry=on_retry,
        )

    @property
    def is_root(self) -> bool:
        """Whether the process already runs with elevated privileges."""
        return self.euid == 0

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    @property
    def user_agents_dir(self) -> str:
        return f"{self.home}/Library/LaunchAgents" if self.home else "~/Library/LaunchAgents"
