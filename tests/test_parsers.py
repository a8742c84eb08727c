"""
Tests for launchctl output parsing — list rows, print blocks, key normalization.
"""

import pytest

from launchplane.core.services.launchctl.parsers import (
    ListEntry,
    is_error_or_warning_line,
    is_header_line,
    keep_first_occurrence,
    normalize_key,
    parse_list,
    parse_list_line,
    parse_optional_int,
    parse_print,
)
from tests import fixtures_launchctl as fx

# ── Line classification ─────────────────────────────────────────


class TestLineClassification:
    def test_header_detected(self):
        assert is_header_line("PID\tStatus\tLabel")
        assert is_header_line("pid  label")

    def test_data_row_is_not_header(self):
        assert not is_header_line("-\t0\tcom.example.agent")

    @pytest.mark.parametrize(
        "line",
        [
            "Could not contact daemon.",
            "Error: something broke",
            "Warning: Reading from launchd may take a while.",
            "failed to enumerate",
            "Unable to read domain",
            "launchctl: Operation not permitted",
        ],
    )
    def test_error_lines(self, line):
        assert is_error_or_warning_line(line)

    def test_data_row_with_error_in_label_is_kept(self):
        assert not is_error_or_warning_line("-\t0\tcom.example.error")
        assert not is_error_or_warning_line("123 0 com.example.failed-jobs")

    def test_plain_key_value_is_not_error(self):
        assert not is_error_or_warning_line("state = running")


class TestParseOptionalInt:
    def test_dash_and_empty_are_none(self):
        assert parse_optional_int("-") is None
        assert parse_optional_int("") is None
        assert parse_optional_int("  ") is None

    def test_decimal(self):
        assert parse_optional_int("1234") == 1234
        assert parse_optional_int("-1") == -1

    def test_hex(self):
        assert parse_optional_int("0x1a2b") == 0x1A2B
        assert parse_optional_int("0X0") == 0

    def test_leading_decimal_prefix(self):
        assert parse_optional_int("78abc") == 78

    def test_garbage_is_none(self):
        assert parse_optional_int("abc") is None
        assert parse_optional_int("0xzz") is None


# ── launchctl list ──────────────────────────────────────────────


class TestParseList:
    def test_standard(self):
        entries = parse_list(fx.LIST_STANDARD)
        assert entries == [
            ListEntry(None, 0, "com.apple.syslogd"),
            ListEntry(1234, 0, "com.example.running"),
            ListEntry(None, 78, "com.example.error"),
            ListEntry(None, None, "com.example.disabled"),
            ListEntry(56789, 0, "com.apple.mDNSResponder"),
        ]

    def test_extra_whitespace(self):
        entries = parse_list(fx.LIST_EXTRA_WHITESPACE)
        assert [e.label for e in entries] == ["com.apple.syslogd", "com.example.running"]
        assert entries[1].pid == 1234

    def test_space_separated(self):
        entries = parse_list(fx.LIST_SPACE_SEPARATED)
        assert len(entries) == 3
        assert entries[2] == ListEntry(None, 78, "com.example.error")

    def test_mixed_separators(self):
        entries = parse_list(fx.LIST_MIXED_SEPARATORS)
        assert [e.label for e in entries] == [
            "com.apple.syslogd",
            "com.example.running",
            "com.example.error",
        ]

    def test_no_header(self):
        assert len(parse_list(fx.LIST_NO_HEADER)) == 3

    def test_empty_and_header_only(self):
        assert parse_list("") == []
        assert parse_list("   \n\n") == []
        assert parse_list(fx.LIST_HEADER_ONLY) == []

    def test_error_lines_skipped(self):
        entries = parse_list(fx.LIST_WITH_ERROR)
        assert [e.label for e in entries] == ["com.apple.syslogd", "com.example.running"]

    def test_large_and_negative_values(self):
        entries = parse_list(fx.LIST_LARGE_PIDS)
        assert entries[0].pid == 99999
        assert entries[1].pid == 1234567
        assert entries[2].exit_status == -1

    def test_unusual_labels(self):
        labels = [e.label for e in parse_list(fx.LIST_UNUSUAL_LABELS)]
        assert labels == [
            "com.example.with-dash",
            "com.example.with_underscore",
            "com.example.with.many.dots",
            "0com.starts.with.number",
        ]

    def test_catalina(self):
        entries = parse_list(fx.LIST_CATALINA)
        assert entries[1] == ListEntry(145, 0, "com.apple.Spotlight")

    def test_extra_path_column_ignored(self):
        entries = parse_list(fx.LIST_SEQUOIA)
        assert entries == [
            ListEntry(None, 0, "com.apple.syslogd"),
            ListEntry(1234, 0, "com.example.running"),
        ]

    def test_unsafe_labels_dropped(self):
        labels = [e.label for e in parse_list(fx.LIST_UNSAFE_LABELS)]
        assert labels == ["com.example.good"]

    def test_order_preserved(self):
        labels = [e.label for e in parse_list(fx.LIST_STANDARD)]
        assert labels[0] == "com.apple.syslogd"
        assert labels[-1] == "com.apple.mDNSResponder"

    def test_short_row_rejected(self):
        assert parse_list_line("-\t0") is None
        assert parse_list_line("") is None


# ── Key normalization ───────────────────────────────────────────


class TestNormalizeKey:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("pid", "pid"),
            ("PID", "pid"),
            ("process id", "pid"),
            ("ProcessID", "pid"),
            ("last exit code", "last_exit_code"),
            ("lastExitCode", "last_exit_code"),
            ("LastExitStatus", "last_exit_status"),
            ("last-exit-code", "last_exit_code"),
            ("status", "state"),
            ("run state", "run_state"),
            ("OnDemand", "ondemand"),
            ("spawn type", "spawn_type"),
            ("active count", "active_count"),
            ("processtype", "processtype"),
            ("process-type", "process_type"),
        ],
    )
    def test_normalization(self, raw, expected):
        assert normalize_key(raw) == expected

    def test_keep_first_occurrence(self):
        record = {}
        keep_first_occurrence(record, "state", "running")
        keep_first_occurrence(record, "state", "waiting")
        assert record == {"state": "running"}


# ── launchctl print ─────────────────────────────────────────────


class TestParsePrint:
    def test_modern(self):
        assert parse_print(fx.PRINT_MODERN) == {
            "path": "/Library/LaunchDaemons/com.example.myservice.plist",
            "state": "running",
            "program": "/usr/local/bin/myservice",
            "pid": "1234",
            "last_exit_code": "0",
            "spawn_type": "daemon",
            "ondemand": "false",
            "active_count": "1",
            "runs": "5",
        }

    def test_ventura_skips_nested_arguments(self):
        info = parse_print(fx.PRINT_VENTURA)
        assert info == {
            "path": "/System/Library/LaunchAgents/com.apple.sharingd.plist",
            "state": "running",
            "program": "/usr/libexec/sharingd",
            "pid": "456",
            "last_exit_code": "0",
            "enabled": "true",
            "run_state": "running",
            "priority": "50",
            "processtype": "Background",
        }

    def test_catalina_key_names(self):
        info = parse_print(fx.PRINT_CATALINA)
        assert info["pid"] == "789"
        assert info["last_exit_status"] == "0"
        # "status" is normalized to "state"
        assert info["state"] == "0"

    def test_big_sur(self):
        info = parse_print(fx.PRINT_BIG_SUR)
        assert info["last_exit_status"] == "0"
        assert info["pid"] == "321"

    def test_legacy_quoted_pairs(self):
        info = parse_print(fx.PRINT_LEGACY)
        assert info["label"] == "com.example.legacy"
        assert info["program"] == "/usr/bin/legacy"
        assert info["pid"] == "555"
        assert info["last_exit_status"] == "0"
        assert info["ondemand"] == "true"

    def test_nested_blocks_skipped(self):
        info = parse_print(fx.PRINT_NESTED)
        assert info == {
            "path": "/System/Library/LaunchDaemons/com.apple.complex.plist",
            "state": "running",
            "pid": "111",
            "program": "/usr/libexec/complex",
        }
        assert "active" not in info
        assert "home" not in info

    def test_not_found_is_empty(self):
        assert parse_print(fx.PRINT_NOT_FOUND) == {}

    def test_empty(self):
        assert parse_print("") == {}
        assert parse_print("\n  \n") == {}

    def test_leading_warning_ignored(self):
        assert parse_print(fx.PRINT_PARTIAL_ERROR) == {
            "path": "/Library/LaunchDaemons/com.example.partial.plist",
            "state": "running",
        }

    def test_colon_format(self):
        info = parse_print(fx.PRINT_SEQUOIA)
        assert info["service"] == "com.example.sequoia"
        assert info["pid"] == "9999"
        assert info["last_exit_code"] == "0"
        assert info["process_type"] == "background"
        assert info["type"] == "daemon"

    def test_hex_values_kept_as_text(self):
        info = parse_print(fx.PRINT_HEX_VALUES)
        assert info["pid"] == "0x1a2b"
        assert parse_optional_int(info["pid"]) == 6699
        assert info["mach_port"] == "0xdeadbeef"

    def test_first_occurrence_wins(self):
        info = parse_print(fx.PRINT_DUPLICATE_KEYS)
        assert info["state"] == "running"
        assert info["pid"] == "42"
