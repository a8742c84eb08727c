"""
Service monitor — the stateful core a client drives.

Wires discovery, the offline reconciler, the diff/merge step, the
metadata cache and the action orchestrator into one object:

    refresh()          discover → reconcile (offline fallback) → merge
    load_detail()      single-flight detail fetch → Service.refine()
    execute_action()   one action at a time → audit → refresh on success

Two independent timers:
    auto-refresh   runs while enabled AND online; interval is
                   active_interval after recent interaction, else
                   idle_interval; recreated whenever either input changes
    reconnect      owned by the OfflineReconciler; runs only while offline
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.core.config.loader import Settings
from launchplane.core.models.action import ActionResult, ServiceAction
from launchplane.core.models.service import Service
from launchplane.core.persistence.audit import AuditEntry, AuditWriter
from launchplane.core.reliability.offline import OfflineReconciler
from launchplane.core.services.diff_merge import NO_CHANGE, merge_services
from launchplane.core.services.discovery import DiscoveryError, ServiceDiscovery
from launchplane.core.services.launchctl.actions import ActionOrchestrator, perform_action
from launchplane.core.services.metadata_cache import MetadataCache

logger = logging.getLogger(__name__)

ACTION_IN_PROGRESS = "ACTION_IN_PROGRESS"


class ServiceMonitor:
    """Keep a live, merged view of the host's services.

    Args:
        executor: Command executor (real or mock).
        discovery: Defaults to a ServiceDiscovery over ``executor``.
        orchestrator: Defaults to an ActionOrchestrator over ``executor``.
        audit: Optional action ledger.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        discovery: ServiceDiscovery | None = None,
        orchestrator: ActionOrchestrator | None = None,
        audit: AuditWriter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings: Settings = executor.context.settings
        self._discovery = discovery or ServiceDiscovery(executor)
        self._orchestrator = orchestrator or ActionOrchestrator(executor)
        self._audit = audit
        self._clock = clock

        self.reconciler = OfflineReconciler(
            self._discovery.discover,
            threshold=self._settings.offline.threshold,
            reconnect_interval=self._settings.offline.reconnect_interval,
            failure_types=(DiscoveryError,),
            on_reconnect=self._on_reconnect,
        )
        self.cache = MetadataCache(self._settings.metadata_cache.max_size)
        self.services: list[Service] = []
        self.action_in_progress = False

        self._auto_refresh_enabled = self._settings.refresh.enabled
        self._auto_refresh_task: asyncio.Task[None] | None = None
        self._last_interaction = clock()

    @classmethod
    def from_executor(cls, executor: CommandExecutor) -> ServiceMonitor:
        """Build a monitor with the audit ledger configured in settings."""
        audit_path = executor.context.settings.audit.path
        return cls(executor, audit=AuditWriter(audit_path) if audit_path else None)

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        """Initial discovery, then start the auto-refresh timer."""
        await self.refresh()
        self._sync_auto_refresh()

    async def close(self) -> None:
        task, self._auto_refresh_task = self._auto_refresh_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.reconciler.close()

    async def __aenter__(self) -> ServiceMonitor:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Snapshot ─────────────────────────────────────────────────

    @property
    def is_offline(self) -> bool:
        return self.reconciler.is_offline

    async def refresh(self) -> bool:
        """Re-discover and merge. Returns True when the visible list changed.

        Raises:
            DiscoveryError: When discovery fails and nothing is cached.
        """
        try:
            fresh = await self.reconciler.refresh()
        finally:
            self._sync_auto_refresh()
        return self._apply(fresh)

    def _apply(self, fresh: list[Service]) -> bool:
        merged = merge_services(self.services, fresh)
        if merged is NO_CHANGE:
            return False

        # Entries replaced by discovery lose their refinement; re-apply cached detail
        previous = {id(s) for s in self.services}
        refined = []
        for service in merged:
            detail = None if id(service) in previous else self.cache.get(service.id)
            refined.append(service.refine(detail) if detail is not None else service)

        self.services = refined
        return True

    def _on_reconnect(self, services: list[Service]) -> None:
        self._apply(services)
        self._sync_auto_refresh()

    def find(self, label_or_id: str) -> Service | None:
        for service in self.services:
            if service.id == label_or_id:
                return service
        for service in self.services:
            if service.label == label_or_id:
                return service
        return None

    async def load_detail(self, service: Service) -> Service | None:
        """Fetch detail once and swap the refined service into the snapshot.

        Returns None when a fetch for the same service is already running
        or the fetch failed.
        """
        detail = await self.cache.fetch(service, self._discovery.fetch_detail)
        if detail is None:
            return None

        refined = service.refine(detail)
        self.services = [refined if s.id == service.id else s for s in self.services]
        return refined

    # ── Actions ──────────────────────────────────────────────────

    async def execute_action(
        self,
        action: ServiceAction | str,
        service: Service,
        dry_run: bool = False,
        password: str | None = None,
    ) -> ActionResult:
        """Run one action; a second concurrent request is refused."""
        if self.action_in_progress:
            return ActionResult.failure("Another action is already in progress", error=ACTION_IN_PROGRESS)

        self.action_in_progress = True
        self.touch()
        try:
            start = time.monotonic()
            result = await perform_action(self._orchestrator, action, service, dry_run=dry_run, password=password)
            duration_ms = int((time.monotonic() - start) * 1000)

            if not dry_run and self._audit is not None:
                self._audit.write(AuditEntry.from_result(action, service, result, duration_ms))

            if result.success and not dry_run:
                await self._refresh_after_action()
            return result
        finally:
            self.action_in_progress = False

    async def _refresh_after_action(self) -> None:
        try:
            await self.refresh()
        except DiscoveryError as e:
            logger.warning("Refresh after action failed: %s", e)

    # ── Auto-refresh ─────────────────────────────────────────────

    def touch(self) -> None:
        """Record user interaction (shortens the refresh interval)."""
        self._last_interaction = self._clock()

    @property
    def refresh_interval(self) -> float:
        refresh = self._settings.refresh
        idle_for = self._clock() - self._last_interaction
        return refresh.idle_interval if idle_for > refresh.idle_threshold else refresh.active_interval

    @property
    def auto_refresh_enabled(self) -> bool:
        return self._auto_refresh_enabled

    @property
    def auto_refresh_running(self) -> bool:
        return self._auto_refresh_task is not None and not self._auto_refresh_task.done()

    def set_auto_refresh(self, enabled: bool) -> None:
        self._auto_refresh_enabled = enabled
        self._sync_auto_refresh()

    def _sync_auto_refresh(self) -> None:
        """Create or tear down the timer to match enabled/offline."""
        wanted = self._auto_refresh_enabled and not self.reconciler.is_offline
        if wanted:
            if not self.auto_refresh_running:
                self._auto_refresh_task = asyncio.get_running_loop().create_task(self._auto_refresh_loop())
            return

        task, self._auto_refresh_task = self._auto_refresh_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _auto_refresh_loop(self) -> None:
        while True:
            # Interval is recomputed every cycle
            await asyncio.sleep(self.refresh_interval)
            try:
                await self.refresh()
            except DiscoveryError as e:
                logger.debug("Silent refresh failed: %s", e)
            if self._auto_refresh_task is not asyncio.current_task():
                return
