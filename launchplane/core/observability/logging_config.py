"""
Logging configuration — set up once by the CLI entry point.

Every module logs through ``logging.getLogger(__name__)`` and inherits
the handlers installed here.

Console level precedence:
    --debug / --verbose / --quiet  >  LAUNCHPLANE_LOG_LEVEL  >  WARNING

A log file is added when LAUNCHPLANE_LOG_FILE is set; its level comes
from LAUNCHPLANE_LOG_FILE_LEVEL (default: same as the console). A log
file that cannot be opened is reported on the console and skipped.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV = "LAUNCHPLANE_LOG_LEVEL"
LOG_FILE_ENV = "LAUNCHPLANE_LOG_FILE"
LOG_FILE_LEVEL_ENV = "LAUNCHPLANE_LOG_FILE_LEVEL"

DEFAULT_LEVEL = "WARNING"

# Console tiers, most detailed first: (highest level, format, datefmt)
_CONSOLE_TIERS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d [%(process)d] %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Subprocess transports log every pipe event at DEBUG
_NOISY_LOGGERS = ("asyncio",)


def resolve_level(cli_level: str | None = None) -> str:
    """Pick the console level name from CLI flag, environment, or default."""
    return cli_level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LEVEL


def level_number(name: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean WARNING."""
    numeric = logging.getLevelName(name.upper()) if name else None
    return numeric if isinstance(numeric, int) else logging.WARNING


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next(
        ((f, d) for threshold, f, d in _CONSOLE_TIERS if level <= threshold),
        _CONSOLE_DEFAULT,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    """Open ``path`` for appending, creating its directory. Raises OSError."""
    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name.
        log_file: Optional log file path (defaults to $LAUNCHPLANE_LOG_FILE).
        log_file_level: Optional file level (defaults to $LAUNCHPLANE_LOG_FILE_LEVEL,
            then to ``level``).
        quiet_third_party: Keep noisy library loggers at WARNING unless at DEBUG.
    """
    console_level = level_number(level)
    handlers = [_console_handler(console_level)]
    file_error = None

    log_file = log_file or os.environ.get(LOG_FILE_ENV)
    if log_file:
        file_level_name = log_file_level or os.environ.get(LOG_FILE_LEVEL_ENV)
        file_level = level_number(file_level_name) if file_level_name else console_level
        try:
            handlers.append(_file_handler(log_file, file_level))
        except OSError as e:
            file_error = e

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    # The root passes everything any handler wants
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False

    if file_error is not None:
        logging.getLogger(__name__).warning("Log file %s not writable, console only: %s", log_file, file_error)
