"""
Mock command executor — scripted stand-in for real processes.

Used by the test suite and by ``--mock`` mode (and automatically off
macOS). Nothing is ever spawned: every call is recorded in ``call_log``
and answered from scripted responses.

Responses are keyed by argv prefix; the longest matching prefix wins:

    mock.set_response(("launchctl", "list"), CommandResult(stdout=...))
    mock.set_failure(("launchctl", "kickstart"), "Operation not permitted")
    mock.set_sequence(("launchctl", "kill"), [busy, busy, ok])
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.core.context import ControlContext
from launchplane.core.models.action import CommandResult
from launchplane.core.reliability.retry import RetryPolicy

ArgvKey = tuple[str, ...]


@dataclass(frozen=True)
class MockCall:
    """One recorded invocation."""

    argv: tuple[str, ...]
    input_text: str | None = None
    timeout: float | None = None

    @property
    def cmd(self) -> str:
        return self.argv[0]


class MockCommandExecutor(CommandExecutor):
    """CommandExecutor double that never spawns a process.

    Unscripted commands return ``default`` (success with empty output).
    """

    def __init__(
        self,
        context: ControlContext | None = None,
        policy: RetryPolicy | None = None,
        default: CommandResult | None = None,
    ):
        super().__init__(context, policy)
        self._default = default or CommandResult()
        self._responses: dict[ArgvKey, list[CommandResult | Exception]] = {}
        self._call_log: list[MockCall] = []

    @property
    def call_log(self) -> list[MockCall]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, *prefix: str) -> list[MockCall]:
        """Recorded calls whose argv starts with ``prefix``."""
        return [c for c in self._call_log if c.argv[: len(prefix)] == prefix]

    # ── Scripting ────────────────────────────────────────────────

    def set_response(self, argv: Sequence[str], result: CommandResult | Exception) -> None:
        """Always answer ``argv`` (prefix) with ``result``."""
        self._responses[tuple(argv)] = [result]

    def set_sequence(self, argv: Sequence[str], results: Sequence[CommandResult | Exception]) -> None:
        """Answer successive calls in order; the last result then repeats."""
        if not results:
            raise ValueError("results must not be empty")
        self._responses[tuple(argv)] = list(results)

    def set_output(self, argv: Sequence[str], stdout: str) -> None:
        self.set_response(argv, CommandResult(stdout=stdout))

    def set_failure(self, argv: Sequence[str], stderr: str = "Mock failure", exit_code: int = 1) -> None:
        self.set_response(argv, CommandResult(stderr=stderr, exit_code=exit_code))

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()

    def _lookup(self, argv: ArgvKey) -> CommandResult | Exception:
        for size in range(len(argv), 0, -1):
            queue = self._responses.get(argv[:size])
            if queue is None:
                continue
            return queue.pop(0) if len(queue) > 1 else queue[0]
        return self._default

    async def exec_once(
        self,
        cmd: str,
        args: list[str],
        timeout: float | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        argv = (cmd, *args)
        self._call_log.append(MockCall(argv=argv, input_text=input_text, timeout=timeout))

        response = self._lookup(argv)
        if isinstance(response, Exception):
            raise response
        return response


# ── Demo data for --mock mode ──────────────────────────────────────

DEMO_LAUNCHCTL_LIST = """\
PID\tStatus\tLabel
-\t0\tcom.apple.bird
412\t0\tcom.apple.Finder
-\t0\tcom.apple.mdworker.shared
98\t0\tcom.apple.cloudd
1234\t0\tcom.docker.helper
-\t78\tcom.example.backup-agent
2210\t0\tcom.github.GitHub.Desktop.ShipIt
-\t0\thomebrew.mxcl.postgresql
731\t0\torg.nginx.daemon
-\t1\tcom.example.sync-daemon
"""

DEMO_EXTENSIONS_LIST = """\
2 extension(s)
--- com.apple.system_extension.network_extension
enabled\tactive\tteamID\tbundleID (version)\tname\t[state]
*\t*\tEQHXZ8M8AV\tcom.example.vpn.tunnel (2.4.1/241)\tExampleVPN Tunnel\t[activated enabled]
--- com.apple.system_extension.endpoint_security
enabled\tactive\tteamID\tbundleID (version)\tname\t[state]
*\t\tABCDE12345\tcom.example.security.agent (1.0/1)\tSecurity Agent\t[activated waiting for user]
"""


def demo_executor(context: ControlContext | None = None) -> MockCommandExecutor:
    """A MockCommandExecutor seeded with a realistic demo host."""
    mock = MockCommandExecutor(context, policy=RetryPolicy(max_retries=0))
    mock.set_output(("launchctl", "list"), DEMO_LAUNCHCTL_LIST)
    mock.set_output(("systemextensionsctl", "list"), DEMO_EXTENSIONS_LIST)
    mock.set_output(("sw_vers", "-productVersion"), "15.1\n")
    mock.set_failure(("launchctl", "print"), "Could not find service in domain for port")
    mock.set_failure(("plutil",), "file does not exist")
    return mock
