"""
Service definition (plist) metadata.

XML and binary plists are both converted by ``plutil`` to JSON and
consumed as already-structured data; nothing here parses plist XML.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.core.models.service import PlistMetadata

logger = logging.getLogger(__name__)

PLUTIL = "plutil"


async def read_plist(executor: CommandExecutor, path: str) -> dict[str, Any] | None:
    """Convert a plist to a dict via ``plutil -convert json``.

    Returns None when conversion fails or the root is not a dictionary.
    """
    result = await executor.exec(PLUTIL, ["-convert", "json", "-o", "-", path])
    if result.exit_code != 0:
        logger.debug("plutil could not convert %s: %s", path, result.stderr.strip())
        return None

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        logger.debug("plutil produced invalid JSON for %s: %s", path, e)
        return None

    return data if isinstance(data, dict) else None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _non_empty_dict(value: Any) -> bool:
    return isinstance(value, dict) and len(value) > 0


def _calendar_entry(value: Any) -> dict[str, int] | None:
    if not isinstance(value, dict):
        return None
    return {k: v for k, v in value.items() if isinstance(v, int) and not isinstance(v, bool)}


def _calendar(value: Any) -> dict[str, int] | list[dict[str, int]] | None:
    if isinstance(value, list):
        entries = [entry for entry in map(_calendar_entry, value) if entry is not None]
        return entries or None
    return _calendar_entry(value)


def to_metadata(raw: dict[str, Any]) -> PlistMetadata:
    """Map launchd plist keys onto PlistMetadata, dropping ill-typed values."""
    keep_alive = raw.get("KeepAlive")
    if not isinstance(keep_alive, bool | dict):
        keep_alive = None

    calendar = _calendar(raw.get("StartCalendarInterval"))

    interval = raw.get("StartInterval")
    env = raw.get("EnvironmentVariables")

    return PlistMetadata(
        program=raw.get("Program") if isinstance(raw.get("Program"), str) else None,
        program_arguments=_strings(raw.get("ProgramArguments")),
        run_at_load=raw.get("RunAtLoad") if isinstance(raw.get("RunAtLoad"), bool) else None,
        keep_alive=keep_alive,
        working_directory=raw.get("WorkingDirectory") if isinstance(raw.get("WorkingDirectory"), str) else None,
        environment_variables={k: str(v) for k, v in env.items()} if isinstance(env, dict) else {},
        standard_out_path=raw.get("StandardOutPath") if isinstance(raw.get("StandardOutPath"), str) else None,
        standard_error_path=raw.get("StandardErrorPath") if isinstance(raw.get("StandardErrorPath"), str) else None,
        start_interval=interval if isinstance(interval, int) and not isinstance(interval, bool) else None,
        start_calendar_interval=calendar,
        process_type=raw.get("ProcessType") if isinstance(raw.get("ProcessType"), str) else None,
        watch_paths=_strings(raw.get("WatchPaths")),
        queue_directories=_strings(raw.get("QueueDirectories")),
        has_sockets=_non_empty_dict(raw.get("Sockets")),
        has_mach_services=_non_empty_dict(raw.get("MachServices")),
    )


def _format_interval(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    return f"{round(seconds / 3600)}h"


def describe(metadata: PlistMetadata) -> str:
    """One-line summary of how launchd runs the service."""
    parts = []

    if metadata.run_at_load:
        parts.append("Runs at load")

    if metadata.keep_alive is True:
        parts.append("Always kept alive")
    elif isinstance(metadata.keep_alive, dict):
        parts.append("Conditional keep-alive")

    if metadata.start_interval:
        parts.append(f"Runs every {_format_interval(metadata.start_interval)}")

    if metadata.start_calendar_interval:
        parts.append("Scheduled")

    if metadata.watch_paths:
        parts.append(f"Watches {len(metadata.watch_paths)} path(s)")

    if metadata.queue_directories:
        parts.append(f"Queue dirs: {len(metadata.queue_directories)}")

    if metadata.has_sockets:
        parts.append("Socket-activated")

    if metadata.has_mach_services:
        parts.append("Mach service")

    return ", ".join(parts) or "On-demand"


async def load_metadata(
    executor: CommandExecutor,
    path: str | None,
) -> tuple[PlistMetadata | None, str | None]:
    """Read a plist and return ``(metadata, description)``; both None on failure."""
    if not path:
        return None, None

    raw = await read_plist(executor, path)
    if raw is None:
        return None, None

    metadata = to_metadata(raw)
    return metadata, describe(metadata)
