"""
Parsers for launchctl output.

Two unrelated grammars:

    list   — rows of ``pid  exit-status  label`` (tab- or space-separated,
             optional header, possibly interleaved with daemon errors)
    print  — one service's ``key = value`` / ``key: value`` /
             ``"Key" = "Value";`` block, with nested ``{ ... }`` blocks

Both are tolerant: malformed or empty input produces an empty result,
never an exception. Output formats observed from 10.14 Mojave through
15 Sequoia are covered by tests/fixtures_launchctl.py.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from launchplane.core.services.launchctl.validation import SAFE_LABEL

# ── Line classification ─────────────────────────────────────────

_DATA_ROW = re.compile(r"^(-|\d+)\s")

_ERROR_PREFIXES = ("could not", "error:", "warning:", "failed", "unable to")
_ERROR_SUBSTRINGS = (
    "permission denied",
    "operation not permitted",
    "contact daemon",
    "no such service",
    "service not found",
)


def is_header_line(line: str) -> bool:
    lower = line.lower()
    return "pid" in lower and ("status" in lower or "label" in lower)


def is_error_or_warning_line(line: str) -> bool:
    """Daemon-contact errors and warnings mixed into command output.

    A line that already looks like a data row is never an error line,
    so a label containing "error" is not dropped.
    """
    trimmed = line.strip()
    if _DATA_ROW.match(trimmed):
        return False

    lower = trimmed.lower()
    return lower.startswith(_ERROR_PREFIXES) or any(s in lower for s in _ERROR_SUBSTRINGS)


# ── launchctl list ──────────────────────────────────────────────


@dataclass(frozen=True)
class ListEntry:
    """One row of ``launchctl list``."""

    pid: int | None
    exit_status: int | None
    label: str


_DECIMAL = re.compile(r"[+-]?\d+")


def parse_optional_int(value: str) -> int | None:
    """``-`` or empty → None; ``0x`` prefix → hex; otherwise decimal."""
    text = value.strip()
    if text in ("-", ""):
        return None
    if text.lower().startswith("0x"):
        try:
            return int(text[2:], 16)
        except ValueError:
            return None
    match = _DECIMAL.match(text)
    return int(match.group()) if match else None


def _entry_from_fields(fields: list[str]) -> ListEntry | None:
    if len(fields) < 3:
        return None
    pid_part, status_part, label_part = fields[:3]
    if not pid_part or not status_part or not label_part:
        return None
    if not SAFE_LABEL.fullmatch(label_part):
        return None
    return ListEntry(
        pid=parse_optional_int(pid_part),
        exit_status=parse_optional_int(status_part),
        label=label_part,
    )


def parse_list_line(line: str) -> ListEntry | None:
    trimmed = line.strip()
    if not trimmed:
        return None
    if is_header_line(trimmed) or is_error_or_warning_line(trimmed):
        return None

    tab_fields = [part.strip() for part in trimmed.split("\t")]
    return _entry_from_fields(tab_fields) or _entry_from_fields(trimmed.split())


def parse_list(output: str) -> list[ListEntry]:
    """Parse ``launchctl list`` output into ordered entries."""
    if not output or not output.strip():
        return []
    entries = []
    for line in output.splitlines():
        entry = parse_list_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


# ── launchctl print ─────────────────────────────────────────────

# Known synonyms. Keys are compared lower-cased, then snake_cased,
# then with underscores removed.
KEY_NORMALIZATIONS: dict[str, str] = {
    # PID
    "pid": "pid",
    "process_id": "pid",
    "process id": "pid",
    "processid": "pid",
    # Exit status
    "last_exit_code": "last_exit_code",
    "last exit code": "last_exit_code",
    "lastexitcode": "last_exit_code",
    "last_exit_status": "last_exit_status",
    "last exit status": "last_exit_status",
    "lastexitstatus": "last_exit_status",
    "exit_status": "exit_status",
    "exit status": "exit_status",
    "exitstatus": "exit_status",
    # State
    "status": "state",
    "state": "state",
    "run_state": "run_state",
    "runstate": "run_state",
    # Other
    "path": "path",
    "program": "program",
    "enabled": "enabled",
    "disabled": "disabled",
    "ondemand": "ondemand",
    "on_demand": "ondemand",
    "spawn_type": "spawn_type",
    "spawntype": "spawn_type",
    "label": "label",
}

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[\s-]+")


def normalize_key(key: str) -> str:
    """Collapse a print-output key to its canonical snake_case name."""
    raw = key.strip()
    lower = raw.lower()
    if lower in KEY_NORMALIZATIONS:
        return KEY_NORMALIZATIONS[lower]

    snake = _SEPARATORS.sub("_", _CAMEL_BOUNDARY.sub(r"\1_\2", raw)).lower()
    if snake in KEY_NORMALIZATIONS:
        return KEY_NORMALIZATIONS[snake]

    compact = snake.replace("_", "")
    if compact in KEY_NORMALIZATIONS:
        return KEY_NORMALIZATIONS[compact]

    return snake


_EQUALS_LINE = re.compile(r"^\s*([\w\s-]+?)\s*=\s*(.+)$")
_COLON_LINE = re.compile(r"^([a-zA-Z][\w\s-]*):\s+(.+)$")
_LEGACY_LINE = re.compile(r'^\s*"([^"]+)"\s*=\s*(.+);\s*$')


def _split_key_value(line: str) -> tuple[str, str] | None:
    """Try each line grammar in turn: ``k = v``, ``k: v``, ``"K" = "V";``."""
    match = _EQUALS_LINE.match(line)
    if match:
        return match.group(1).strip(), match.group(2).strip()

    match = _COLON_LINE.match(line)
    if match:
        return match.group(1).strip(), match.group(2).strip()

    match = _LEGACY_LINE.match(line)
    if match:
        value = match.group(2).strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        return match.group(1).strip(), value

    return None


def keep_first_occurrence(record: dict[str, str], key: str, value: str) -> None:
    """Print-key merge policy: a key already seen in the block is never overwritten."""
    if key not in record:
        record[key] = value


def parse_print(output: str) -> dict[str, str]:
    """Parse ``launchctl print`` output into a flat, normalized map.

    The outermost ``<service> = {`` block (if any) is the service itself
    and its body is read as top level. Every other block — any line ending
    in ``{`` up to its matching ``}`` — is skipped entirely.
    """
    info: dict[str, str] = {}
    if not output or not output.strip():
        return info

    depth = 0          # current brace depth
    container = False  # whether depth 1 is the service block itself

    for line in output.splitlines():
        trimmed = line.strip()
        if not trimmed or is_error_or_warning_line(trimmed):
            continue

        if trimmed.endswith("{"):
            if depth == 0 and not info and trimmed != "{":
                container = True
            depth += 1
            continue

        if trimmed == "}":
            depth = max(depth - 1, 0)
            if depth == 0:
                container = False
            continue

        if depth > 1 or (depth == 1 and not container):
            continue

        pair = _split_key_value(line)
        if pair is not None:
            key, value = pair
            keep_first_occurrence(info, normalize_key(key), value)

    return info
