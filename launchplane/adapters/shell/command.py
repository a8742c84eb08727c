"""
Shell command adapter — run one external command and capture its output.

This is the only place a service-management process is spawned. Every
invocation is a single child process, awaited, with a timeout that
force-kills it. Higher layers (privilege escalation, actions,
discovery) are built on top of this.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from launchplane.core.context import ControlContext
from launchplane.core.models.action import CommandResult, RetryInfo
from launchplane.core.reliability.retry import RetryError, RetryPolicy, is_transient

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class CommandError(Exception):
    """Raised by exec_once when a command could not complete."""


class CommandTimeoutError(CommandError):
    """The command exceeded its timeout and was killed."""


class TransientCommandError(CommandError):
    """A command exited non-zero with a transient-looking stderr."""

    def __init__(self, result: CommandResult):
        super().__init__(result.stderr.strip() or f"Command failed with exit code {result.exit_code}")
        self.result = result


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
    await proc.wait()


class CommandExecutor:
    """Spawn external commands with a timeout.

    Three forms:
        exec_once        — single attempt; raises CommandError on timeout/spawn failure.
        exec             — single attempt; never raises, failures become exit code 1.
        exec_with_retry  — retries transient failures with backoff; never raises.
    """

    def __init__(self, context: ControlContext | None = None, policy: RetryPolicy | None = None):
        self._context = context or ControlContext()
        self._policy = policy or RetryPolicy.from_settings(
            self._context.settings.retry,
            on_retry=self._context.on_retry,
        )

    @property
    def context(self) -> ControlContext:
        return self._context

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def default_timeout(self) -> float:
        return self._context.settings.command_timeout or DEFAULT_TIMEOUT

    async def exec_once(
        self,
        cmd: str,
        args: list[str],
        timeout: float | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        """Run a command once.

        Args:
            cmd: Executable name or path.
            args: Arguments (never passed through a shell).
            timeout: Seconds before the process is killed.
            input_text: Optional data written to stdin.

        Raises:
            CommandTimeoutError: If the timeout expired.
            CommandError: If the process could not be spawned.
        """
        timeout = timeout or self.default_timeout
        logger.debug("Executing: %s %s", cmd, " ".join(args))
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                cmd,
                *args,
                stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(f"Failed to start {cmd}: {e}") from e

        data = input_text.encode() if input_text is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(data), timeout=timeout)
        except asyncio.TimeoutError:
            await _terminate(proc)
            raise CommandTimeoutError(f"Command timed out after {timeout:g}s") from None
        except BaseException:
            # Cancelled: do not leave the child running
            await _terminate(proc)
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug("%s exited %s in %dms", cmd, proc.returncode, elapsed_ms)

        return CommandResult(
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else 1,
        )

    async def exec(
        self,
        cmd: str,
        args: list[str],
        timeout: float | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        """Run a command once, reporting failures as exit code 1."""
        try:
            return await self.exec_once(cmd, args, timeout, input_text)
        except CommandError as e:
            return CommandResult(stdout="", stderr=str(e), exit_code=1)

    async def exec_with_retry(
        self,
        cmd: str,
        args: list[str],
        timeout: float | None = None,
        policy: RetryPolicy | None = None,
    ) -> CommandResult:
        """Run a command, retrying transient failures.

        A non-zero exit is retried only when its stderr is transient;
        any other non-zero exit is returned as-is on the first attempt.
        """
        policy = policy or self._policy

        async def attempt() -> CommandResult:
            result = await self.exec_once(cmd, args, timeout)
            if result.exit_code != 0 and is_transient(result.stderr, result.exit_code):
                raise TransientCommandError(result)
            return result

        try:
            outcome = await policy.run(attempt)
        except RetryError as e:
            if isinstance(e.last_error, TransientCommandError):
                last = e.last_error.result
            else:
                last = CommandResult(stderr=str(e.last_error), exit_code=1)
            return last.model_copy(
                update={
                    "retry_info": RetryInfo(
                        attempts=e.attempts,
                        retried=e.attempts > 1,
                        retry_errors=[*e.retry_errors, str(e.last_error)],
                    )
                }
            )

        result = outcome.value
        if outcome.retried:
            result = result.model_copy(
                update={
                    "retry_info": RetryInfo(
                        attempts=outcome.attempts,
                        retried=True,
                        retry_errors=outcome.retry_errors,
                    )
                }
            )
        return result
