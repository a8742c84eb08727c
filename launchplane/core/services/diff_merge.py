"""
Snapshot diff/merge with reference stability.

    merge_services(old, new) → NO_CHANGE | list[Service]

- id set changed (added/removed)      → ``new`` as-is
- no volatile field changed anywhere  → NO_CHANGE (keep current state)
- otherwise                           → ``old`` order, where unchanged
                                        entries are the *same objects*
                                        as in ``old`` and changed ones
                                        are taken from ``new``

Callers compare entries with ``is`` to skip unchanged work.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Literal

from launchplane.core.models.service import Service

VOLATILE_FIELDS: Final = ("status", "pid", "enabled", "exit_status", "last_error")


class _NoChange(Enum):
    NO_CHANGE = "no-change"

    def __repr__(self) -> str:
        return "NO_CHANGE"


NO_CHANGE: Final = _NoChange.NO_CHANGE

MergeResult = list[Service] | Literal[_NoChange.NO_CHANGE]


def has_changed(old: Service, new: Service) -> bool:
    """Whether any volatile (runtime) field differs."""
    return any(getattr(old, name) != getattr(new, name) for name in VOLATILE_FIELDS)


def merge_services(old: list[Service], new: list[Service]) -> MergeResult:
    """Reconcile a fresh snapshot against the current one."""
    new_by_id = {service.id: service for service in new}
    old_ids = {service.id for service in old}

    if old_ids != new_by_id.keys():
        return new

    changed = False
    merged: list[Service] = []
    for previous in old:
        current = new_by_id[previous.id]
        if has_changed(previous, current):
            changed = True
            merged.append(current)
        else:
            merged.append(previous)

    return merged if changed else NO_CHANGE
