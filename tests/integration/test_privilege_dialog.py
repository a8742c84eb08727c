"""
Integration: the native-dialog escalation path against a slow stand-in dialog.

``osascript`` and ``sudo`` are small shell scripts placed first on PATH.
"""

import os
import stat

import pytest

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.adapters.shell.privilege import PrivilegeEscalator
from launchplane.core.config.loader import AuditSettings, Settings
from launchplane.core.context import ControlContext

pytestmark = pytest.mark.skipif(os.name != "posix", reason="needs /bin/sh")

# Takes longer than command_timeout below to "type the password"
SLOW_DIALOG = "#!/bin/sh\nsleep 1\nexit 0\n"
# No cached credentials; everything else succeeds
FAKE_SUDO = '#!/bin/sh\nif [ "$1" = "-n" ]; then exit 1; fi\necho "ran $*"\n'


def _script(path, body):
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


@pytest.fixture
def stub_bin(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    _script(bin_dir / "osascript", SLOW_DIALOG)
    _script(bin_dir / "sudo", FAKE_SUDO)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}/bin{os.pathsep}/usr/bin")
    return bin_dir


def _escalator(auth_timeout: float) -> PrivilegeEscalator:
    settings = Settings(command_timeout=0.3, auth_timeout=auth_timeout, audit=AuditSettings(path=None))
    context = ControlContext(env={"TERM_PROGRAM": "Apple_Terminal"}, uid=501, euid=501, settings=settings)
    return PrivilegeEscalator(CommandExecutor(context))


class TestDialogTimeout:
    @pytest.mark.asyncio
    async def test_slow_user_is_not_cut_off(self, stub_bin):
        result = await _escalator(auth_timeout=10).execute(["launchctl", "kickstart", "-k", "system/x"])

        assert result.success
        assert result.path == "dialog"
        assert result.stdout == "ran launchctl kickstart -k system/x"

    @pytest.mark.asyncio
    async def test_unanswered_dialog_times_out(self, stub_bin):
        result = await _escalator(auth_timeout=0.3).execute(["launchctl", "kickstart", "-k", "system/x"])

        assert not result.success
        assert result.auth_timed_out
        assert not result.auth_failed
        assert result.stderr == "Authentication dialog timed out after 0.3s"
