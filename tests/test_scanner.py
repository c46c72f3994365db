"""Tests for opencode_tmux_mem.scanner."""
from unittest.mock import patch

import psutil
import pytest

from opencode_tmux_mem.errors import ScanError, ToolUnavailable
from opencode_tmux_mem.scanner import ProcessScanner, matches

from conftest import FakeProc

MiB = 1024 * 1024


def _scan(procs, footprint, match_mode="exact", pattern="opencode"):
    scanner = ProcessScanner(footprint=footprint)
    with patch("opencode_tmux_mem.scanner.psutil.process_iter", return_value=procs):
        return scanner.scan(match_mode, pattern), scanner


def no_footprint(pid):
    return {}


# ---------------------------------------------------------------------------
# matches
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("mode, name, cmdline, expected", [
    ("exact", "opencode", ["opencode"], True),
    ("exact", "node", ["/opt/homebrew/bin/opencode", "--port", "0"], True),
    ("exact", "opencode-server", ["opencode-server"], False),
    ("exact", "vim", ["vim", "opencode"], False),
    ("full", "node", ["node", "/usr/lib/opencode/cli.js"], True),
    ("full", "vim", ["vim", "notes.md"], False),
    ("full", "opencode", [], True),
])
def test_matches(mode, name, cmdline, expected):
    assert matches(mode, "opencode", name, cmdline) is expected


def test_matches_rejects_unknown_mode():
    with pytest.raises(ValueError):
        matches("regex", "opencode", "opencode", [])


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------

def test_scan_merges_footprint_and_rss():
    procs = [FakeProc(100, "opencode", ["opencode"], rss=200 * MiB)]
    records, _ = _scan(procs, lambda pid: {"swap": "50M", "physical": "412.5M"})
    assert len(records) == 1
    r = records[0]
    assert r.pid == 100
    assert r.command_line == "opencode"
    assert r.swap_bytes == 50 * MiB
    assert r.physical_bytes == int(412.5 * MiB)
    assert r.rss_bytes == 200 * MiB


def test_scan_filters_non_matching_and_orders_by_pid():
    procs = [
        FakeProc(300, "opencode", ["opencode"], rss=1),
        FakeProc(150, "zsh", ["-zsh"], rss=1),
        FakeProc(100, "opencode", ["opencode", "run"], rss=1),
    ]
    records, _ = _scan(procs, no_footprint)
    assert [r.pid for r in records] == [100, 300]


def test_scan_full_mode_substring():
    procs = [
        FakeProc(100, "node", ["node", "/usr/lib/opencode/cli.js"], rss=1),
        FakeProc(200, "node", ["node", "server.js"], rss=1),
    ]
    records, _ = _scan(procs, no_footprint, match_mode="full")
    assert [r.pid for r in records] == [100]
    assert records[0].command_line == "node /usr/lib/opencode/cli.js"


def test_scan_skips_own_pid():
    procs = [FakeProc(4321, "opencode", ["opencode"], rss=1)]
    with patch("opencode_tmux_mem.scanner.os.getpid", return_value=4321):
        records, _ = _scan(procs, no_footprint)
    assert records == []


def test_scan_duplicate_pids_reported_once():
    procs = [FakeProc(100, "opencode", ["opencode"], rss=1), FakeProc(100, "opencode", ["opencode"], rss=2)]
    records, _ = _scan(procs, no_footprint)
    assert len(records) == 1


def test_scan_empty_match_is_not_an_error():
    records, _ = _scan([FakeProc(1, "launchd", ["/sbin/launchd"], rss=1)], no_footprint)
    assert records == []


def test_scan_pid_without_footprint_entry_is_degraded_not_dropped():
    procs = [FakeProc(100, "opencode", ["opencode"], rss=4096), FakeProc(200, "opencode", ["opencode"], rss=8192)]
    records, _ = _scan(procs, lambda pid: {"swap": "1M", "physical": "2M"} if pid == 100 else {})
    by_pid = {r.pid: r for r in records}
    assert by_pid[200].swap_bytes is None
    assert by_pid[200].physical_bytes is None
    assert by_pid[200].rss_bytes == 8192


def test_scan_rss_access_denied_is_absent():
    records, _ = _scan([FakeProc(100, "opencode", ["opencode"], rss=None)], lambda pid: {"swap": "0K"})
    assert records[0].rss_bytes is None
    assert records[0].swap_bytes == 0


def test_scan_malformed_swap_token_only_drops_that_field(capsys):
    procs = [
        FakeProc(300, "opencode", ["opencode"], rss=10 * MiB),
        FakeProc(400, "opencode", ["opencode"], rss=1),
    ]
    records, scanner = _scan(procs, lambda pid: {"swap": "??", "physical": "3M"} if pid == 300 else {"swap": "1K"})
    by_pid = {r.pid: r for r in records}
    assert by_pid[300].swap_bytes is None
    assert by_pid[300].physical_bytes == 3 * MiB
    assert by_pid[300].rss_bytes == 10 * MiB
    assert by_pid[400].swap_bytes == 1024
    assert any("pid 300 swap" in w for w in scanner.warnings)
    assert "warning:" in capsys.readouterr().err


def test_scan_footprint_tool_unavailable_degrades_all_rows(capsys):
    calls = []

    def missing(pid):
        calls.append(pid)
        raise ToolUnavailable("vmmap", "not installed")

    procs = [FakeProc(100, "opencode", ["opencode"], rss=1), FakeProc(200, "opencode", ["opencode"], rss=2)]
    records, _ = _scan(procs, missing)
    assert len(records) == 2
    assert all(r.swap_bytes is None and r.physical_bytes is None for r in records)
    assert [r.rss_bytes for r in records] == [1, 2]
    # the missing tool is tried once, not once per pid
    assert calls == [100]
    assert capsys.readouterr().err.count("vmmap unavailable") == 1


def test_scan_enumeration_failure_is_fatal():
    scanner = ProcessScanner(footprint=no_footprint)
    with patch("opencode_tmux_mem.scanner.psutil.process_iter", side_effect=psutil.AccessDenied()):
        with pytest.raises(ScanError):
            scanner.scan("exact", "opencode")


def test_scan_enumeration_failure_mid_iteration_is_fatal():
    def broken(attrs=None):
        yield FakeProc(100, "opencode", ["opencode"], rss=1)
        raise OSError("proc unreadable")

    scanner = ProcessScanner(footprint=no_footprint)
    with patch("opencode_tmux_mem.scanner.psutil.process_iter", side_effect=broken):
        with pytest.raises(ScanError):
            scanner.scan("exact", "opencode")


def test_scan_rejects_unknown_match_mode():
    with pytest.raises(ValueError):
        ProcessScanner(footprint=no_footprint).scan("glob", "opencode")
