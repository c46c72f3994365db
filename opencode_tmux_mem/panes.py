"""Map processes to the tmux pane that owns them."""
import sys

import psutil

from opencode_tmux_mem.errors import ToolUnavailable
from opencode_tmux_mem.models import PaneHandle
from opencode_tmux_mem.tools import TOOL_TIMEOUT, run_tool

MAX_ANCESTRY_DEPTH = 512
LIST_PANES_FORMAT = "\t".join([
    "#{session_name}",
    "#{window_index}",
    "#{pane_index}",
    "#{window_name}",
    "#{pane_pid}",
    "#{history_size}",
    "#{history_limit}",
])


def _int_or_none(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_list_panes(text: str) -> dict[int, PaneHandle]:
    """Parse ``tmux list-panes -a -F LIST_PANES_FORMAT`` output into pid -> pane."""
    panes: dict[int, PaneHandle] = {}
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) < 5:
            continue
        session, window_index, pane_index, window_name, pane_pid = parts[:5]
        window_index, pane_index, pane_pid = (
            _int_or_none(window_index), _int_or_none(pane_index), _int_or_none(pane_pid),
        )
        if not session or window_index is None or pane_index is None:
            continue
        if pane_pid is None or pane_pid <= 0:
            continue
        extra = parts[5:7] + [""] * (2 - len(parts[5:7]))
        panes[pane_pid] = PaneHandle(
            session=session,
            window_index=window_index,
            pane_index=pane_index,
            window_name=window_name,
            history_size=_int_or_none(extra[0]),
            history_limit=_int_or_none(extra[1]),
        )
    return panes


def parent_pid(pid: int) -> int | None:
    try:
        return psutil.Process(pid).ppid()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


class PaneResolver:
    """Owns the pane map for one run.

    ``owner_of`` walks up the parent chain because the process of interest is
    usually a child of the shell tmux started in the pane. The walk is capped
    at ``max_depth`` parent hops and stops on a repeated pid.
    """

    def __init__(self, parent_of=None, max_depth: int = MAX_ANCESTRY_DEPTH,
                 timeout: float = TOOL_TIMEOUT):
        self._parent_of = parent_of or parent_pid
        self.max_depth = max_depth
        self.timeout = timeout
        self._panes: dict[int, PaneHandle] = {}
        self._ppid_cache: dict[int, int | None] = {}
        self.reachable = False

    @property
    def panes(self) -> dict[int, PaneHandle]:
        return dict(self._panes)

    def resolve(self) -> dict[int, PaneHandle]:
        try:
            raw = run_tool(["tmux", "list-panes", "-a", "-F", LIST_PANES_FORMAT], timeout=self.timeout)
        except ToolUnavailable as e:
            print(f"warning: tmux panes unavailable: {e}", file=sys.stderr)
            self._panes = {}
            self.reachable = False
            return {}
        self._panes = parse_list_panes(raw)
        self.reachable = True
        return dict(self._panes)

    def _ppid(self, pid: int) -> int | None:
        if pid not in self._ppid_cache:
            self._ppid_cache[pid] = self._parent_of(pid)
        return self._ppid_cache[pid]

    def owner_of(self, pid: int) -> PaneHandle | None:
        if not self._panes:
            return None
        seen: set[int] = set()
        cur: int | None = pid
        hops = 0
        while cur is not None and cur > 0 and cur not in seen:
            pane = self._panes.get(cur)
            if pane is not None:
                return pane
            if hops >= self.max_depth:
                return None
            seen.add(cur)
            cur = self._ppid(cur)
            hops += 1
        return None
