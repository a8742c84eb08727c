"""
Tests for system extension listing — row parsing, status mapping, dedup policy.
"""

import pytest

from launchplane.adapters.mock import DEMO_EXTENSIONS_LIST
from launchplane.core.models.service import (
    Classification,
    ExtensionState,
    ProtectionStatus,
    ServiceDomain,
    ServiceStatus,
    ServiceType,
)
from launchplane.core.services.extensions import (
    extension_status,
    keep_most_active,
    list_extensions,
    parse_extension_list,
)
from tests.fixtures_launchctl import EXTENSIONS_DUPLICATE_BUNDLE


class TestExtensionStatus:
    @pytest.mark.parametrize(
        ("enabled", "active", "expected"),
        [
            ("disabled", "active", ServiceStatus.DISABLED),
            ("enabled", "active", ServiceStatus.RUNNING),
            ("enabled", "terminated", ServiceStatus.ERROR),
            ("enabled", "waiting", ServiceStatus.STOPPED),
            ("enabled", None, ServiceStatus.UNKNOWN),
            (None, "inactive", ServiceStatus.UNKNOWN),
        ],
    )
    def test_mapping(self, enabled, active, expected):
        assert extension_status(enabled, active) == expected


class TestParseExtensionList:
    def test_demo_output(self):
        extensions = parse_extension_list(DEMO_EXTENSIONS_LIST)
        by_label = {e.label: e for e in extensions}
        assert set(by_label) == {"com.example.vpn.tunnel", "com.example.security.agent"}

        vpn = by_label["com.example.vpn.tunnel"]
        assert vpn.id == "sysext-com.example.vpn.tunnel"
        assert vpn.type == ServiceType.EXTENSION
        assert vpn.domain == ServiceDomain.SYSTEM
        assert vpn.protection == ProtectionStatus.SYSTEM_OWNED
        assert vpn.requires_root
        assert vpn.classification == Classification.CONFIRMED
        assert vpn.status == ServiceStatus.RUNNING
        assert vpn.extension_state == ExtensionState.ACTIVATED_ENABLED
        assert vpn.team_id == "EQHXZ8M8AV"
        assert vpn.version == "2.4.1/241"
        assert vpn.categories == ["com.apple.system_extension.network_extension"]

    def test_blank_active_column_uses_state_tag(self):
        agent = {e.label: e for e in parse_extension_list(DEMO_EXTENSIONS_LIST)}["com.example.security.agent"]
        assert agent.status == ServiceStatus.STOPPED
        assert agent.extension_state == ExtensionState.ACTIVATED_WAITING

    def test_duplicate_bundle_keeps_most_active(self):
        extensions = parse_extension_list(EXTENSIONS_DUPLICATE_BUNDLE)
        assert len(extensions) == 1
        merged = extensions[0]
        assert merged.status == ServiceStatus.RUNNING
        assert merged.categories == [
            "com.apple.system_extension.network_extension",
            "com.apple.system_extension.endpoint_security",
        ]

    def test_headers_and_counts_skipped(self):
        assert parse_extension_list("0 extension(s)\n") == []
        assert parse_extension_list("enabled\tactive\tteamID\tbundleID (version)\tname\t[state]\n") == []
        assert parse_extension_list("") == []

    def test_vendor_bundle(self):
        output = "*\t*\tAPPLE12345\tcom.apple.driver.Thing (1.0)\tThing\t[activated enabled]\n"
        (extension,) = parse_extension_list(output)
        assert extension.is_vendor_owned
        assert extension.categories == []


class TestKeepMostActive:
    def test_tie_keeps_existing(self):
        first, = parse_extension_list(
            "--- cat.a\n*\t*\tABCDE12345\tcom.example.x (1)\tX\t[activated enabled]\n"
        )
        second = first.model_copy(update={"categories": ["cat.b"], "version": "2"})
        merged = keep_most_active(first, second)
        assert merged.version == "1"
        assert merged.categories == ["cat.a", "cat.b"]

    def test_less_active_candidate_loses(self):
        running, = parse_extension_list("*\t*\tABCDE12345\tcom.example.x (1)\tX\t[activated enabled]\n")
        stopped = running.model_copy(update={"status": ServiceStatus.STOPPED})
        assert keep_most_active(running, stopped) is running


class TestListExtensions:
    @pytest.mark.asyncio
    async def test_failure_yields_empty(self, mock_executor):
        mock_executor.set_failure(("systemextensionsctl",), "command not found", exit_code=127)
        assert await list_extensions(mock_executor) == []

    @pytest.mark.asyncio
    async def test_success(self, mock_executor):
        mock_executor.set_output(("systemextensionsctl", "list"), DEMO_EXTENSIONS_LIST)
        assert len(await list_extensions(mock_executor)) == 2
