"""
Offline reconciler — keep a client usable while discovery is failing.

States:
    ONLINE   → Discovery succeeding (or failing fewer than threshold times).
    OFFLINE  → threshold consecutive failures. The last good snapshot is
               served and a reconnect is attempted every reconnect_interval.

Transitions:
    ONLINE → OFFLINE:  consecutive_failures >= threshold
    OFFLINE → ONLINE:  any successful discovery (refresh or reconnect)

Error masking:
    A failure is hidden from the caller only when a previous successful
    snapshot exists; otherwise the original exception propagates.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from launchplane.core.models.service import Service
from launchplane.core.models.state import OfflineState

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 3
DEFAULT_RECONNECT_INTERVAL = 30.0

Discover = Callable[[], Awaitable[list[Service]]]
SnapshotCallback = Callable[[list[Service]], None]


class ConnectionState(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


class OfflineReconciler:
    """Wrap a discovery call with failure counting and cached fallback.

    Args:
        discover: Coroutine function producing a fresh snapshot.
        threshold: Consecutive failures before going offline.
        reconnect_interval: Seconds between reconnect attempts while offline.
        failure_types: Exceptions counted as discovery failures.
        on_reconnect: Called with the fresh snapshot after a timer reconnect.
    """

    def __init__(
        self,
        discover: Discover,
        threshold: int = DEFAULT_THRESHOLD,
        reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL,
        failure_types: tuple[type[Exception], ...] = (Exception,),
        on_reconnect: SnapshotCallback | None = None,
    ):
        self._discover = discover
        self.threshold = threshold
        self.reconnect_interval = reconnect_interval
        self._failure_types = failure_types
        self._on_reconnect = on_reconnect

        self.state = OfflineState()
        self.services: list[Service] = []
        self._reconnect_task: asyncio.Task[None] | None = None

    @property
    def is_offline(self) -> bool:
        return self.state.is_offline

    @property
    def connection_state(self) -> ConnectionState:
        return ConnectionState.OFFLINE if self.state.is_offline else ConnectionState.ONLINE

    @property
    def has_snapshot(self) -> bool:
        return bool(self.state.last_successful_snapshot)

    @property
    def reconnect_scheduled(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    async def refresh(self) -> list[Service]:
        """Run discovery and return the list the client should show.

        Raises:
            Exception: The discovery failure, when no snapshot exists to fall back on.
        """
        try:
            services = await self._discover()
        except self._failure_types as e:
            self.record_failure(e)
            if not self.has_snapshot:
                raise
            return self.services

        self.record_success(services)
        return services

    async def attempt_reconnect(self) -> bool:
        """One reconnect attempt. Returns True when back online."""
        logger.debug("Attempting reconnect (failures=%d)", self.state.consecutive_failures)
        try:
            services = await self._discover()
        except self._failure_types as e:
            self.state.last_error = str(e)
            logger.debug("Reconnect failed: %s", e)
            return False

        self.record_success(services)
        if self._on_reconnect is not None:
            self._on_reconnect(services)
        return True

    def record_success(self, services: list[Service]) -> None:
        was_offline = self.state.is_offline
        self.state.mark_success(services)
        self.services = services
        if was_offline:
            logger.info("Discovery back online: %s → %s", ConnectionState.OFFLINE, ConnectionState.ONLINE)
        self._sync_reconnect_timer()

    def record_failure(self, error: BaseException) -> None:
        self.state.consecutive_failures += 1
        self.state.last_error = str(error)

        if not self.state.is_offline and self.state.consecutive_failures >= self.threshold:
            self.state.is_offline = True
            logger.info(
                "Discovery offline after %d consecutive failures: %s → %s (%s)",
                self.state.consecutive_failures,
                ConnectionState.ONLINE,
                ConnectionState.OFFLINE,
                error,
            )

        if self.state.is_offline and self.has_snapshot:
            self.services = self.state.last_successful_snapshot
        self._sync_reconnect_timer()

    # ── Reconnect timer ──────────────────────────────────────────

    def _sync_reconnect_timer(self) -> None:
        """Run the reconnect loop exactly while offline."""
        if self.state.is_offline:
            if not self.reconnect_scheduled:
                self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_loop())
            return

        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _reconnect_loop(self) -> None:
        while self.state.is_offline:
            await asyncio.sleep(self.reconnect_interval)
            if await self.attempt_reconnect():
                return

    async def close(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.connection_state.value,
            "consecutive_failures": self.state.consecutive_failures,
            "threshold": self.threshold,
            "reconnect_interval": self.reconnect_interval,
            "last_successful_refresh": self.state.last_successful_refresh,
            "last_error": self.state.last_error,
            "cached_services": len(self.state.last_successful_snapshot),
        }
