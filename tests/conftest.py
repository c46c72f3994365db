"""Shared fixtures for opencode-tmux-mem tests."""
import io
import threading
from types import SimpleNamespace

import pytest

from opencode_tmux_mem.models import PaneHandle, ProcessRecord


VMMAP_SUMMARY_TEMPLATE = """\
Process:         opencode [100]
Path:            /opt/homebrew/bin/opencode
Identifier:      opencode
Version:         ???
Code Type:       ARM64
Platform:        macOS
Parent Process:  zsh [300]

Date/Time:       2026-10-19 14:54:00.000 +0200
Launch Time:     2026-10-18 09:12:41.112 +0200
OS Version:      macOS 15.1 (24B83)
Report Version:  7
Analysis Tool:   /usr/bin/vmmap

Physical footprint:         412.5M
Physical footprint (peak):  1.2G
Idle exit:                  untracked
----

ReadOnly portion of Libraries: Total=1.1G resident=412.0M(37%) swapped_out_or_unallocated=688.0M(63%)
Writable regions: Total=2.4G written=1.1G(46%) resident=300.2M(12%) swapped_out=50.0M(2%) unallocated=1.3G(54%)

                                VIRTUAL RESIDENT    DIRTY  SWAPPED VOLATILE   NONVOL    EMPTY   REGION
REGION TYPE                        SIZE     SIZE     SIZE     SIZE     SIZE     SIZE     SIZE    COUNT (non-coalesced)
===========                     ======= ========    =====  ======= ========   ======    =====  =======
Activity Tracing                   256K      48K      48K       0K       0K      48K       0K        1
MALLOC_SMALL                      1.0G   200.1M   120.4M    30.0M       0K       0K       0K       12
Stack                            40.0M     560K     560K       0K       0K       0K       0K       14
===========                     ======= ========    =====  ======= ========   ======    =====  =======
TOTAL                              5.1G   300.2M   120.4M    50.0M       0K      48K       0K      900
TOTAL, minus reserved VM space     4.8G   300.2M   120.4M    50.0M       0K      48K       0K      900
"""

SMAPS_ROLLUP_TEMPLATE = """\
55d0c4a4b000-7ffd2f9fe000 ---p 00000000 00:00 0                          [rollup]
Rss:              204800 kB
Pss:              150000 kB
Pss_Anon:         120000 kB
Pss_File:          30000 kB
Shared_Clean:      40000 kB
Private_Dirty:    120000 kB
Swap:              51200 kB
SwapPss:           51200 kB
Locked:                0 kB
"""

LIST_PANES_TEMPLATE = (
    "ai\t6\t0\topencode\t100\t1500\t50000\n"
    "ai\t7\t1\tlogs\t150\t20\t50000\n"
    "work\t0\t0\tzsh\t900\t0\t2000\n"
)


class FakeProc:
    """Stands in for a psutil.Process yielded by process_iter(attrs=...)."""

    def __init__(self, pid, name, cmdline=None, rss=None):
        self.pid = pid
        mem = SimpleNamespace(rss=rss) if rss is not None else None
        self.info = {"pid": pid, "name": name, "cmdline": cmdline, "memory_info": mem}


class _HangingPipe:
    """A stdout that produces nothing until the process is killed."""

    def __init__(self, killed):
        self._killed = killed

    def read(self, size=-1):
        self._killed.wait(5)
        return b""


class FakeCapture:
    """Stands in for the subprocess.Popen running tmux capture-pane."""

    def __init__(self, stdout=b"", stderr=b"", returncode=0, hang=False):
        self.killed = threading.Event()
        self.stdout = _HangingPipe(self.killed) if hang else io.BytesIO(stdout)
        self.stderr = io.BytesIO(stderr)
        self.returncode = returncode

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def kill(self):
        self.killed.set()

    def wait(self, timeout=None):
        return -9 if self.killed.is_set() else self.returncode


def make_record(pid, swap=None, physical=None, rss=None, command="opencode"):
    return ProcessRecord(pid=pid, command_line=command, swap_bytes=swap, physical_bytes=physical, rss_bytes=rss)


@pytest.fixture()
def ai_pane():
    return PaneHandle(session="ai", window_index=6, pane_index=0, window_name="opencode",
                      history_size=1500, history_limit=50000)


@pytest.fixture()
def vmmap_summary():
    return VMMAP_SUMMARY_TEMPLATE


@pytest.fixture()
def list_panes_output():
    return LIST_PANES_TEMPLATE


@pytest.fixture()
def tmp_proc(tmp_path):
    """A fake /proc with one readable pid (100) and one bare pid dir (200)."""
    root = tmp_path / "proc"
    (root / "100").mkdir(parents=True)
    (root / "100" / "smaps_rollup").write_text(SMAPS_ROLLUP_TEMPLATE)
    (root / "200").mkdir()
    return str(root)
