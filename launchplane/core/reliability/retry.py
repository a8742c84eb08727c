"""
Retry policy — bounded exponential backoff for transient failures.

Errors are classified by matching their text against an ordered table
of (pattern → classification) pairs. Permanent patterns come first, so
"permission denied ... try again" is never retried. New OS quirks are
added as rows, not as logic.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from launchplane.core.config.loader import RetrySettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, str, float], None]
SleepFunc = Callable[[float], Awaitable[Any]]


class Transience(StrEnum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


# ── Classification table ────────────────────────────────────────
#
# Evaluated top to bottom; first match wins. Unknown errors are not retried.

ERROR_CLASSIFICATION: tuple[tuple[re.Pattern[str], Transience], ...] = (
    # Permanent: never retried
    (re.compile(r"permission denied", re.I), Transience.PERMANENT),
    (re.compile(r"operation not permitted", re.I), Transience.PERMANENT),
    (re.compile(r"system integrity protection", re.I), Transience.PERMANENT),
    (re.compile(r"\bsip\b", re.I), Transience.PERMANENT),
    (re.compile(r"invalid.*label", re.I), Transience.PERMANENT),
    (re.compile(r"no such service", re.I), Transience.PERMANENT),
    (re.compile(r"service not found", re.I), Transience.PERMANENT),
    (re.compile(r"could not find service", re.I), Transience.PERMANENT),
    (re.compile(r"not running", re.I), Transience.PERMANENT),
    (re.compile(r"already running", re.I), Transience.PERMANENT),
    (re.compile(r"already bootstrapped", re.I), Transience.PERMANENT),
    (re.compile(r"no such process", re.I), Transience.PERMANENT),
    (re.compile(r"invalid argument", re.I), Transience.PERMANENT),
    (re.compile(r"EACCES"), Transience.PERMANENT),
    (re.compile(r"EPERM"), Transience.PERMANENT),
    (re.compile(r"ENOENT"), Transience.PERMANENT),
    # Transient: retried with backoff
    (re.compile(r"timed? ?out", re.I), Transience.TRANSIENT),
    (re.compile(r"timeout", re.I), Transience.TRANSIENT),
    (re.compile(r"EAGAIN"), Transience.TRANSIENT),
    (re.compile(r"EBUSY"), Transience.TRANSIENT),
    (re.compile(r"ETIMEDOUT"), Transience.TRANSIENT),
    (re.compile(r"ECONNRESET"), Transience.TRANSIENT),
    (re.compile(r"ECONNREFUSED"), Transience.TRANSIENT),
    (re.compile(r"resource temporarily unavailable", re.I), Transience.TRANSIENT),
    (re.compile(r"resource busy", re.I), Transience.TRANSIENT),
    (re.compile(r"temporary failure", re.I), Transience.TRANSIENT),
    (re.compile(r"try again", re.I), Transience.TRANSIENT),
    (re.compile(r"service unavailable", re.I), Transience.TRANSIENT),
    (re.compile(r"could not communicate", re.I), Transience.TRANSIENT),
    (re.compile(r"contact daemon", re.I), Transience.TRANSIENT),
)


def classify_error(message: str) -> Transience:
    """Classify an error message using the ordered table."""
    for pattern, transience in ERROR_CLASSIFICATION:
        if pattern.search(message):
            return transience
    return Transience.UNKNOWN


def is_transient(error: BaseException | str, exit_code: int | None = None) -> bool:
    """Whether an error should be retried.

    A zero exit code is never an error, whatever stderr says.
    """
    if exit_code == 0:
        return False
    message = error if isinstance(error, str) else str(error)
    return classify_error(message) == Transience.TRANSIENT


# ── Retry loop ──────────────────────────────────────────────────


@dataclass
class RetryOutcome(Generic[T]):
    """Value produced by a retried operation plus retry metadata."""

    value: T
    attempts: int
    retried: bool
    retry_errors: list[str] | None = None


class RetryError(Exception):
    """Raised when an operation fails permanently or retries are exhausted."""

    def __init__(self, last_error: BaseException, attempts: int, retry_errors: list[str]):
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts
        self.retry_errors = retry_errors


@dataclass
class RetryPolicy:
    """Bounded exponential backoff.

    Args:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1).
        initial_delay: Seconds before the first retry.
        max_delay: Cap on any single delay.
        exponential_backoff: Double the delay per attempt when True.
        on_retry: Optional callback ``(attempt, error, delay)``.
        sleep: Awaitable sleep; defaults to ``asyncio.sleep``.
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_backoff: bool = True
    on_retry: RetryCallback | None = None
    sleep: SleepFunc | None = field(default=None, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: RetrySettings,
        on_retry: RetryCallback | None = None,
    ) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.initial_delay,
            max_delay=settings.max_delay,
            exponential_backoff=settings.exponential_backoff,
            on_retry=on_retry,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after the given (1-based) failed attempt."""
        if not self.exponential_backoff:
            return min(self.initial_delay, self.max_delay)
        return min(self.initial_delay * (2 ** (attempt - 1)), self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> RetryOutcome[T]:
        """Run an async operation, retrying transient failures.

        Raises:
            RetryError: On a permanent failure or once retries are exhausted.
        """
        sleep = self.sleep or asyncio.sleep
        retry_errors: list[str] = []

        attempt = 0
        while True:
            attempt += 1
            try:
                value = await operation()
            except Exception as e:
                if attempt > self.max_retries or not is_transient(e):
                    raise RetryError(e, attempt, retry_errors) from e

                retry_errors.append(str(e))
                delay = self.delay_for(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt,
                    self.max_retries + 1,
                    e,
                    delay,
                )
                if self.on_retry is not None:
                    self.on_retry(attempt, str(e), delay)
                await sleep(delay)
                continue

            return RetryOutcome(
                value=value,
                attempts=attempt,
                retried=attempt > 1,
                retry_errors=retry_errors or None,
            )
