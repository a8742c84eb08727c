"""
macOS version detection via ``sw_vers``.

The result is cached on the ControlContext, so each context looks the
version up at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from launchplane.adapters.shell.command import CommandExecutor

logger = logging.getLogger(__name__)

_MARKETING_NAMES = {
    11: "Big Sur",
    12: "Monterey",
    13: "Ventura",
    14: "Sonoma",
    15: "Sequoia",
    16: "Tahoe",
}


@dataclass(frozen=True)
class OSVersion:
    major: int
    minor: int
    patch: int
    full: str
    name: str

    def to_dict(self) -> dict:
        return {
            "major": self.major,
            "minor": self.minor,
            "patch": self.patch,
            "full": self.full,
            "name": self.name,
        }


def marketing_name(major: int, minor: int) -> str:
    if major == 10:
        return "Catalina" if minor >= 15 else "Mojave or earlier"
    return _MARKETING_NAMES.get(major, "Unknown")


def parse_version(text: str) -> OSVersion:
    """Parse ``15.1.1`` style output; anything unparseable becomes ``0.0.0``."""
    full = text.strip() or "0.0.0"
    numbers = []
    for part in full.split(".")[:3]:
        try:
            numbers.append(int(part))
        except ValueError:
            numbers.append(0)
    numbers += [0] * (3 - len(numbers))
    major, minor, patch = numbers
    return OSVersion(major, minor, patch, full, marketing_name(major, minor))


async def get_os_version(executor: CommandExecutor) -> OSVersion:
    """Look up (once per context) the running macOS version."""
    context = executor.context
    if context.os_version is not None:
        return context.os_version

    result = await executor.exec("sw_vers", ["-productVersion"])
    if result.exit_code != 0:
        logger.debug("sw_vers unavailable (%s), assuming non-macOS", result.stderr.strip())
        version = parse_version("")
    else:
        version = parse_version(result.stdout)

    context.os_version = version
    return version
