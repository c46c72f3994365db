"""Per-pid swap and physical footprint sources.

A source is a callable ``pid -> dict`` returning raw text tokens under the
keys ``"swap"`` and ``"physical"``. Keys are left out when the tool has no
value for the pid; an empty dict means the pid has no entry at all. A source
raises ToolUnavailable when the underlying tool cannot be used at all.
"""
import os
import sys

from opencode_tmux_mem.errors import ToolFailed, ToolUnavailable
from opencode_tmux_mem.tools import TOOL_TIMEOUT, run_tool

PROC_ROOT = "/proc"


def parse_vmmap_summary(text: str) -> dict[str, str]:
    """Pick the physical footprint and swapped size out of ``vmmap -summary``."""
    tokens: dict[str, str] = {}
    for line in text.splitlines():
        t = line.strip()
        if t.startswith("Physical footprint:"):
            value = t.split(":", 1)[1].split()
            if value:
                tokens["physical"] = value[0]
        elif t.startswith("TOTAL") and "minus reserved" not in t:
            # TOTAL  VIRTUAL  RESIDENT  DIRTY  SWAPPED ...
            cols = t.split()
            if len(cols) >= 5:
                tokens["swap"] = cols[4]
            break
    return tokens


def vmmap_footprint(pid: int, timeout: float = TOOL_TIMEOUT) -> dict[str, str]:
    try:
        raw = run_tool(["vmmap", "-summary", str(pid)], timeout=timeout)
    except ToolFailed:
        return {}
    return parse_vmmap_summary(raw)


def parse_smaps_rollup(text: str) -> dict[str, str]:
    tokens: dict[str, str] = {}
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if key == "Pss":
            tokens["physical"] = value.strip()
        elif key == "Swap":
            tokens["swap"] = value.strip()
    return tokens


def smaps_footprint(pid: int, proc_root: str = PROC_ROOT) -> dict[str, str]:
    path = os.path.join(proc_root, str(pid), "smaps_rollup")
    try:
        with open(path) as f:
            return parse_smaps_rollup(f.read())
    except FileNotFoundError:
        if os.path.isdir(os.path.join(proc_root, str(pid))):
            raise ToolUnavailable("smaps_rollup", "not provided by this kernel") from None
        return {}
    except (PermissionError, ProcessLookupError):
        return {}


def default_footprint():
    """Return the footprint source for this platform, or None."""
    if sys.platform == "darwin":
        return vmmap_footprint
    if sys.platform.startswith("linux"):
        return smaps_footprint
    return None
