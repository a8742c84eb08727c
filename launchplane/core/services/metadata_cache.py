"""
Metadata cache — bounded LRU of lazily fetched ServiceDetail, keyed by
service id, with single-flight loading.

    put()    merge into any existing entry, move it to the end,
             evict from the front while over max_size
    fetch()  at most one in-flight fetch per id; a concurrent request
             for the same id is suppressed (returns None)
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable

from launchplane.core.models.service import Service, ServiceDetail

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100

DetailFetcher = Callable[[Service], Awaitable[ServiceDetail]]


class MetadataCache:
    """LRU cache of per-service detail plus loading/error tracking."""

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._entries: OrderedDict[str, ServiceDetail] = OrderedDict()
        self._loading: set[str] = set()
        self._errors: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._entries

    @property
    def max_size(self) -> int:
        return self._max_size

    def keys(self) -> list[str]:
        """Ids from least to most recently written."""
        return list(self._entries)

    def get(self, service_id: str) -> ServiceDetail | None:
        return self._entries.get(service_id)

    def put(self, service_id: str, detail: ServiceDetail) -> ServiceDetail:
        existing = self._entries.pop(service_id, None)
        if existing is not None:
            detail = existing.model_copy(update=detail.to_fields())

        self._entries[service_id] = detail
        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted metadata for %s", evicted)
        return detail

    # ── Loading state ────────────────────────────────────────────

    def is_loading(self, service_id: str) -> bool:
        return service_id in self._loading

    def begin_load(self, service_id: str) -> bool:
        """Mark a fetch as in flight. False if one already is."""
        if service_id in self._loading:
            return False
        self._loading.add(service_id)
        self._errors.pop(service_id, None)
        return True

    def finish_load(self, service_id: str, error: str | None = None) -> None:
        self._loading.discard(service_id)
        if error is not None:
            self._errors[service_id] = error

    def error_for(self, service_id: str) -> str | None:
        return self._errors.get(service_id)

    def clear(self) -> None:
        self._entries.clear()
        self._loading.clear()
        self._errors.clear()

    async def fetch(self, service: Service, fetcher: DetailFetcher) -> ServiceDetail | None:
        """Fetch and cache detail for a service, single-flight per id.

        Returns None when a fetch for the same id is already running or
        when the fetch fails (the error is kept for error_for()).
        """
        if not self.begin_load(service.id):
            logger.debug("Metadata fetch for %s already in flight", service.id)
            return None

        error = None
        try:
            detail = await fetcher(service)
        except Exception as e:
            logger.warning("Failed to load metadata for %s: %s", service.label, e)
            error = str(e)
            return None
        finally:
            # Runs on cancellation too
            self.finish_load(service.id, error=error)

        return self.put(service.id, detail)
