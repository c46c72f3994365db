"""Find the processes to report on and gather their memory figures."""
import os
import sys

import psutil

from opencode_tmux_mem.errors import ParseError, ScanError, ToolUnavailable
from opencode_tmux_mem.footprint import default_footprint
from opencode_tmux_mem.models import ProcessRecord
from opencode_tmux_mem.units import parse_bytes

MATCH_MODES = ("exact", "full")
SCAN_ATTRS = ["pid", "name", "cmdline", "memory_info"]


def matches(match_mode: str, pattern: str, name: str, cmdline: list[str]) -> bool:
    """exact: process name or argv[0] basename equals pattern.
    full: joined command line contains pattern."""
    if match_mode == "exact":
        if name == pattern:
            return True
        return bool(cmdline) and os.path.basename(cmdline[0]) == pattern
    if match_mode == "full":
        return pattern in (" ".join(cmdline) if cmdline else name)
    raise ValueError(f"unsupported match mode: {match_mode}")


class ProcessScanner:
    """Enumerate processes with psutil and merge in footprint-tool figures.

    ``footprint`` is a source as described in ``footprint.py``; when left out
    the platform default is used. A footprint tool that cannot be run only
    degrades swap/physical to absent, it never stops the scan.
    """

    def __init__(self, footprint=None):
        self._footprint = footprint if footprint is not None else default_footprint()
        self.warnings: list[str] = []

    def _warn(self, msg: str) -> None:
        self.warnings.append(msg)
        print(f"warning: {msg}", file=sys.stderr)

    def _candidates(self, match_mode: str, pattern: str) -> list[tuple[int, str, int | None]]:
        me = os.getpid()
        found: dict[int, tuple[int, str, int | None]] = {}
        try:
            for p in psutil.process_iter(attrs=SCAN_ATTRS):
                info = p.info
                pid = info.get("pid")
                if pid is None or pid == me or pid in found:
                    continue
                name = info.get("name") or ""
                cmdline = info.get("cmdline") or []
                if not matches(match_mode, pattern, name, cmdline):
                    continue
                mi = info.get("memory_info")
                rss = mi.rss if mi is not None else None
                found[pid] = (pid, " ".join(cmdline) if cmdline else name, rss)
        except (psutil.Error, OSError) as e:
            raise ScanError("process listing", str(e)) from e
        return [found[pid] for pid in sorted(found)]

    def _footprint_tokens(self, pid: int) -> dict[str, str]:
        if self._footprint is None:
            return {}
        try:
            return self._footprint(pid) or {}
        except ToolUnavailable as e:
            self._warn(f"{e}; swap and physical footprint not reported")
            self._footprint = None
            return {}

    def _parse_field(self, pid: int, field: str, tokens: dict[str, str]) -> int | None:
        token = tokens.get(field)
        if token is None:
            return None
        try:
            return parse_bytes(token)
        except ParseError as e:
            self._warn(f"pid {pid} {field}: {e}")
            return None

    def scan(self, match_mode: str, pattern: str) -> list[ProcessRecord]:
        if match_mode not in MATCH_MODES:
            raise ValueError(f"unsupported match mode: {match_mode}")
        records = []
        for pid, command_line, rss in self._candidates(match_mode, pattern):
            tokens = self._footprint_tokens(pid)
            records.append(
                ProcessRecord(
                    pid=pid,
                    command_line=command_line,
                    swap_bytes=self._parse_field(pid, "swap", tokens),
                    physical_bytes=self._parse_field(pid, "physical", tokens),
                    rss_bytes=rss,
                )
            )
        return records
