"""
Action-failure taxonomy — turn launchctl stderr into a user-facing reason.

Rows are tried top to bottom; the first pattern that matches decides
the message and flags. Unmatched output falls through to the exit-code
rules in parse_error_message().
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    PERMISSION = "permission"
    PROTECTION = "protection"
    NOT_FOUND = "not_found"
    ALREADY_RUNNING = "already_running"
    NOT_RUNNING = "not_running"
    BOOTSTRAP = "bootstrap"
    TIMEOUT = "timeout"
    GENERIC = "generic"


@dataclass(frozen=True)
class ParsedError:
    kind: ErrorKind
    message: str
    requires_root: bool = False
    sip_protected: bool = False


@dataclass(frozen=True)
class _ErrorRule:
    pattern: re.Pattern[str]
    kind: ErrorKind
    message: str
    requires_root: bool = False
    sip_protected: bool = False


ACTION_ERROR_TABLE: tuple[_ErrorRule, ...] = (
    _ErrorRule(
        re.compile(r"operation not permitted|permission denied", re.I),
        ErrorKind.PERMISSION,
        "Permission denied - may require administrator privileges",
        requires_root=True,
    ),
    _ErrorRule(
        re.compile(r"system integrity protection|\bsip\b", re.I),
        ErrorKind.PROTECTION,
        "Protected by System Integrity Protection",
        sip_protected=True,
    ),
    _ErrorRule(
        re.compile(r"could not find service|no such service", re.I),
        ErrorKind.NOT_FOUND,
        "Service not found or not loaded",
    ),
    _ErrorRule(
        re.compile(r"already running|already bootstrapped", re.I),
        ErrorKind.ALREADY_RUNNING,
        "Service is already running",
    ),
    _ErrorRule(
        re.compile(r"not running|no such process", re.I),
        ErrorKind.NOT_RUNNING,
        "Service is not running",
    ),
    _ErrorRule(
        re.compile(r"could not bootstrap|bootstrap failed", re.I),
        ErrorKind.BOOTSTRAP,
        "Failed to bootstrap service - check plist configuration",
    ),
    _ErrorRule(
        re.compile(r"timed out", re.I),
        ErrorKind.TIMEOUT,
        "Operation timed out",
    ),
)


def parse_error_message(stderr: str, exit_code: int) -> ParsedError:
    """Classify a failed command's stderr."""
    for rule in ACTION_ERROR_TABLE:
        if rule.pattern.search(stderr):
            return ParsedError(
                kind=rule.kind,
                message=rule.message,
                requires_root=rule.requires_root,
                sip_protected=rule.sip_protected,
            )

    text = stderr.strip()
    # launchctl exits 1 for most unprivileged attempts on system targets
    if exit_code == 1:
        return ParsedError(ErrorKind.GENERIC, text or "Operation failed", requires_root=True)
    return ParsedError(ErrorKind.GENERIC, text or f"Unknown error (exit code {exit_code})")
