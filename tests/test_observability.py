"""
Tests for observability — logging setup and health checks.
"""

import logging

import pytest

from launchplane.core.observability.health import (
    OPTIONAL_TOOLS,
    ComponentHealth,
    SystemHealth,
    check_discovery,
    check_metadata_cache,
    check_privileges,
    check_system_health,
    check_tools,
)
from launchplane.core.observability.logging_config import (
    LOG_FILE_ENV,
    LOG_LEVEL_ENV,
    level_number,
    resolve_level,
    setup_logging,
)
from launchplane.core.reliability.offline import OfflineReconciler
from launchplane.core.services.discovery import DiscoveryError
from launchplane.core.services.metadata_cache import MetadataCache
from tests.factories import make_service


def _which(*missing):
    return lambda tool: None if tool in missing else f"/usr/bin/{tool}"


async def _discover_ok():
    return [make_service()]


async def _discover_fail():
    raise DiscoveryError("Failed to list services: boom")


# ── Logging ─────────────────────────────────────────────────────────


@pytest.fixture
def root_logger():
    return logging.getLogger()


class TestResolveLevel:
    def test_cli_flag_wins(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "ERROR")
        assert resolve_level("DEBUG") == "DEBUG"

    def test_env(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "INFO")
        assert resolve_level() == "INFO"

    def test_default(self, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        assert resolve_level() == "WARNING"

    def test_level_number(self):
        assert level_number("debug") == logging.DEBUG
        assert level_number("chatty") == logging.WARNING
        assert level_number(None) == logging.WARNING


class TestSetupLogging:
    def test_console_level(self, root_logger, monkeypatch):
        monkeypatch.delenv(LOG_FILE_ENV, raising=False)
        setup_logging("INFO")
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 1

    def test_unknown_level_is_warning(self, root_logger, monkeypatch):
        monkeypatch.delenv(LOG_FILE_ENV, raising=False)
        setup_logging("chatty")
        assert root_logger.level == logging.WARNING

    def test_log_file(self, root_logger, tmp_path, monkeypatch):
        log_file = tmp_path / "launchplane.log"
        monkeypatch.setenv(LOG_FILE_ENV, str(log_file))
        setup_logging("WARNING", log_file_level="DEBUG")

        assert root_logger.level == logging.DEBUG
        logging.getLogger("launchplane.test").debug("to the file only")
        for handler in root_logger.handlers:
            handler.flush()
        assert "to the file only" in log_file.read_text()

    def test_log_file_directory_created(self, root_logger, tmp_path, monkeypatch):
        monkeypatch.delenv(LOG_FILE_ENV, raising=False)
        log_file = tmp_path / "state" / "launchplane" / "debug.log"
        setup_logging("INFO", log_file=str(log_file))

        logging.getLogger("launchplane.test").info("discovered 12 services")
        for handler in root_logger.handlers:
            handler.flush()
        assert "discovered 12 services" in log_file.read_text()

    def test_unwritable_log_file_falls_back_to_console(self, root_logger, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv(LOG_FILE_ENV, raising=False)
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        setup_logging("WARNING", log_file=str(blocker / "launchplane.log"))

        assert len(root_logger.handlers) == 1
        assert root_logger.level == logging.WARNING
        assert "not writable, console only" in capsys.readouterr().err

    def test_noisy_loggers_quieted(self, root_logger, monkeypatch):
        monkeypatch.delenv(LOG_FILE_ENV, raising=False)
        setup_logging("INFO")
        assert logging.getLogger("asyncio").level == logging.WARNING


# ── Health ───────────────────────────────────────────────────────────


class TestSystemHealth:
    def test_all_healthy(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b", status="healthy"))
        assert h.status == "healthy"

    def test_degraded_if_any_degraded(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b", status="degraded"))
        assert h.status == "degraded"

    def test_unhealthy_wins(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="degraded"))
        h.add(ComponentHealth(name="b", status="unhealthy"))
        assert h.status == "unhealthy"

    def test_unknown(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a"))
        assert h.status == "unknown"

    def test_to_dict(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        d = h.to_dict()
        assert d["status"] == "healthy"
        assert d["timestamp"]
        assert len(d["components"]) == 1


class TestCheckTools:
    def test_all_present(self):
        assert check_tools(_which()).status == "healthy"

    def test_missing_required(self):
        result = check_tools(_which("launchctl"))
        assert result.status == "unhealthy"
        assert "launchctl" in result.message

    def test_missing_optional(self):
        result = check_tools(_which("osascript"))
        assert result.status == "degraded"
        assert result.message == "Missing optional: osascript"

    def test_mock_mode(self):
        result = check_tools(_which("launchctl", *OPTIONAL_TOOLS), mock=True)
        assert result.status == "healthy"
        assert result.message == "Mock mode, no system tools used"


class TestCheckDiscovery:
    @pytest.mark.asyncio
    async def test_online(self):
        reconciler = OfflineReconciler(_discover_ok)
        await reconciler.refresh()
        result = check_discovery(reconciler)
        assert result.status == "healthy"
        assert result.message == "Online"

    @pytest.mark.asyncio
    async def test_recent_failures(self):
        reconciler = OfflineReconciler(_discover_ok)
        await reconciler.refresh()
        reconciler.record_failure(DiscoveryError("blip"))
        assert check_discovery(reconciler).status == "degraded"

    @pytest.mark.asyncio
    async def test_offline_with_snapshot(self):
        reconciler = OfflineReconciler(_discover_ok, threshold=1, reconnect_interval=3600)
        await reconciler.refresh()
        reconciler.record_failure(DiscoveryError("down"))

        result = check_discovery(reconciler)
        assert result.status == "degraded"
        assert result.message == "Offline, serving cached services"
        await reconciler.close()

    @pytest.mark.asyncio
    async def test_offline_without_snapshot(self):
        reconciler = OfflineReconciler(_discover_fail, threshold=1, reconnect_interval=3600)
        with pytest.raises(DiscoveryError):
            await reconciler.refresh()

        result = check_discovery(reconciler)
        assert result.status == "unhealthy"
        assert "boom" in result.message
        await reconciler.close()


class TestOtherChecks:
    def test_metadata_cache(self):
        result = check_metadata_cache(MetadataCache(max_size=50))
        assert result.message == "0/50 entries"

    def test_privileges(self, context, headless_context, root_context):
        assert check_privileges(root_context).message == "Running as root"
        assert check_privileges(context).message == "Elevation via native dialog"
        assert check_privileges(headless_context).message.startswith("Headless")

    def test_system_health(self, context):
        health = check_system_health(context, cache=MetadataCache(), which=_which())
        names = [c.name for c in health.components]
        assert names == ["tools", "privileges", "metadata_cache"]
        assert health.status == "healthy"
