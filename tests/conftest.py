"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from launchplane.adapters.mock import MockCommandExecutor
from launchplane.core.config.loader import AuditSettings, Settings
from launchplane.core.context import ControlContext
from launchplane.core.reliability.retry import RetryPolicy
from tests.factories import SleepRecorder


@pytest.fixture(autouse=True)
def _isolate_root_logger():
    """The CLI reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in before and type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings() -> Settings:
    """Defaults with the audit ledger disabled."""
    return Settings(audit=AuditSettings(path=None))


@pytest.fixture
def context(settings: Settings) -> ControlContext:
    """An unprivileged, interactive macOS user session."""
    return ControlContext(
        env={"TERM_PROGRAM": "Apple_Terminal"},
        uid=501,
        euid=501,
        home="/Users/test",
        platform="darwin",
        settings=settings,
    )


@pytest.fixture
def headless_context(settings: Settings) -> ControlContext:
    """An unprivileged SSH session (no dialog possible)."""
    return ControlContext(
        env={"SSH_CONNECTION": "10.0.0.2 50000 10.0.0.1 22"},
        uid=501,
        euid=501,
        home="/Users/test",
        platform="darwin",
        settings=settings,
    )


@pytest.fixture
def root_context(settings: Settings) -> ControlContext:
    return ControlContext(env={}, uid=0, euid=0, home="/var/root", platform="darwin", settings=settings)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_policy(sleeper: SleepRecorder) -> RetryPolicy:
    """Default retry shape, but sleeps are recorded instead of awaited."""
    return RetryPolicy(max_retries=3, initial_delay=1.0, max_delay=10.0, sleep=sleeper)


@pytest.fixture
def mock_executor(context: ControlContext, fast_policy: RetryPolicy) -> MockCommandExecutor:
    return MockCommandExecutor(context, policy=fast_policy)


@pytest.fixture
def headless_executor(headless_context: ControlContext, fast_policy: RetryPolicy) -> MockCommandExecutor:
    return MockCommandExecutor(headless_context, policy=fast_policy)


@pytest.fixture
def root_executor(root_context: ControlContext, fast_policy: RetryPolicy) -> MockCommandExecutor:
    return MockCommandExecutor(root_context, policy=fast_policy)
