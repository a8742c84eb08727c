"""
Privilege escalation — decide HOW to run a command as root, then run it.

Decision order (each a distinct path):

    1. direct  — the process is already root; no escalation.
    2. cached  — ``sudo -n true`` succeeds; run with sudo, no prompt.
    3. dialog  — interactive/graphical context; the native admin dialog
                 caches sudo credentials, then run with sudo. The dialog
                 waits up to ``auth_timeout``, not the command timeout.
    4. stdin   — headless context with a caller-supplied password,
                 piped via ``sudo -S``.
       none    — headless without a password: report needs_password,
                 execute nothing.

Security invariants:
    - Password piped via stdin only, never in argv
    - Password never logged
"""

from __future__ import annotations

import logging

from launchplane.adapters.shell.command import CommandError, CommandExecutor, CommandTimeoutError
from launchplane.core.context import ControlContext
from launchplane.core.models.action import CommandResult, PrivilegedResult

logger = logging.getLogger(__name__)

SUDO = "sudo"
OSASCRIPT = "osascript"

# The dialog runs `sudo -v` with admin rights, which caches credentials
# for subsequent plain `sudo` calls.
_DIALOG_SCRIPT = 'do shell script "sudo -v" with administrator privileges'

_REMOTE_SESSION_VARS = ("SSH_CONNECTION", "SSH_TTY", "SSH_CLIENT")
_GRAPHICAL_SESSION_VARS = ("DISPLAY", "__CFBundleIdentifier")
_GUI_TERMINALS = (
    "Apple_Terminal",
    "iTerm.app",
    "vscode",
    "Hyper",
    "Alacritty",
    "kitty",
    "WarpTerminal",
)

_CANCEL_MARKERS = ("user canceled", "-128")
_WRONG_PASSWORD_MARKERS = ("Sorry, try again", "incorrect password", "Authentication failed")


def is_interactive_context(context: ControlContext) -> bool:
    """Whether a graphical auth dialog can be shown to the user."""
    env = context.env

    if any(env.get(var) for var in _REMOTE_SESSION_VARS):
        return False

    term_program = env.get("TERM_PROGRAM", "")
    if term_program and any(t in term_program for t in _GUI_TERMINALS):
        return True

    if any(env.get(var) for var in _GRAPHICAL_SESSION_VARS):
        return True

    return context.is_macos


def _from_command(result: CommandResult, path: str) -> PrivilegedResult:
    return PrivilegedResult(
        success=result.exit_code == 0,
        stdout=result.stdout.strip(),
        stderr=result.stderr.strip(),
        exit_code=result.exit_code,
        path=path,
    )


class PrivilegeEscalator:
    """Run commands with elevated privileges through the right OS mechanism."""

    def __init__(self, executor: CommandExecutor, context: ControlContext | None = None):
        self._executor = executor
        self._context = context or executor.context

    async def credentials_cached(self) -> bool:
        """Non-interactive probe for cached sudo credentials.

        A probe that cannot run at all is treated as "not cached", but
        logged so a missing/broken sudo does not go unnoticed.
        """
        try:
            result = await self._executor.exec_once(SUDO, ["-n", "true"])
        except CommandError as e:
            logger.warning("Credential probe failed, assuming not cached: %s", e)
            return False
        return result.exit_code == 0

    async def execute(self, command: list[str], password: str | None = None) -> PrivilegedResult:
        """Run ``command`` as root using the first applicable path."""
        if self._context.is_root:
            logger.debug("Already privileged, running directly")
            return await self._run(command, path="direct")

        if await self.credentials_cached():
            logger.debug("Sudo credentials cached, running with sudo")
            return await self._run([SUDO, *command], path="cached")

        if is_interactive_context(self._context):
            logger.debug("Interactive context, using native auth dialog")
            return await self._run_with_dialog(command)

        if password:
            logger.debug("Headless context, piping password to sudo")
            return await self._run_with_password(command, password)

        return PrivilegedResult(
            success=False,
            stderr="Password required for privileged operation in headless context",
            exit_code=1,
            needs_password=True,
            path="none",
        )

    async def _run(self, command: list[str], path: str) -> PrivilegedResult:
        cmd, *args = command
        result = await self._executor.exec(cmd, args)
        return _from_command(result, path)

    async def _run_with_dialog(self, command: list[str]) -> PrivilegedResult:
        auth_timeout = self._context.settings.auth_timeout
        try:
            dialog = await self._executor.exec_once(OSASCRIPT, ["-e", _DIALOG_SCRIPT], timeout=auth_timeout)
        except CommandTimeoutError:
            logger.warning("Auth dialog not answered within %gs", auth_timeout)
            return PrivilegedResult(
                success=False,
                stderr=f"Authentication dialog timed out after {auth_timeout:g}s",
                exit_code=1,
                auth_timed_out=True,
                path="dialog",
            )
        except CommandError as e:
            return PrivilegedResult(success=False, stderr=str(e), exit_code=1, path="dialog")

        if dialog.exit_code != 0:
            stderr = dialog.stderr.lower()
            if any(marker in stderr for marker in _CANCEL_MARKERS):
                return PrivilegedResult(
                    success=False,
                    stderr="User cancelled authentication",
                    exit_code=1,
                    auth_cancelled=True,
                    path="dialog",
                )
            return PrivilegedResult(
                success=False,
                stderr="Failed to authenticate",
                exit_code=1,
                auth_failed=True,
                path="dialog",
            )

        return await self._run([SUDO, *command], path="dialog")

    async def _run_with_password(self, command: list[str], password: str) -> PrivilegedResult:
        result = await self._executor.exec(SUDO, ["-S", *command], input_text=password + "\n")
        privileged = _from_command(result, "stdin")

        if any(marker in result.stderr for marker in _WRONG_PASSWORD_MARKERS):
            privileged = privileged.model_copy(update={"success": False, "auth_failed": True})
        return privileged
