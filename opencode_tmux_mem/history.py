"""Estimate how much scrollback a tmux pane is holding."""
import subprocess
import sys
import threading

from opencode_tmux_mem.errors import CaptureError, CaptureOverflow, CaptureTimeout
from opencode_tmux_mem.models import HistoryEstimate, PaneHandle

CAPTURE_TIMEOUT = 5.0
CAPTURE_MAX_BYTES = 64 * 1024 * 1024
CHUNK_SIZE = 64 * 1024


class HistoryEstimator:
    """Capture a pane's full history and report its byte length.

    The length of the captured text is a lower bound on what tmux keeps
    internally. Captures are cached per pane, so a pane shared by several
    processes is captured once. Any failure yields no estimate for that
    pane only.
    """

    def __init__(self, timeout: float = CAPTURE_TIMEOUT, max_bytes: int = CAPTURE_MAX_BYTES):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.warnings: list[str] = []
        self._cache: dict[PaneHandle, HistoryEstimate | None] = {}

    def capture(self, pane: PaneHandle) -> bytes:
        """Read the pane's history, killing tmux once it runs past the
        timeout or the output grows beyond ``max_bytes``."""
        cmd = ["tmux", "capture-pane", "-p", "-S", "-", "-E", "-", "-t", pane.target]
        try:
            proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            raise CaptureError(f"{pane.target}: {e}") from e

        expired = threading.Event()

        def expire():
            expired.set()
            proc.kill()

        timer = threading.Timer(self.timeout, expire)
        timer.start()
        chunks: list[bytes] = []
        size = 0
        with proc:
            try:
                while True:
                    chunk = proc.stdout.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        proc.kill()
                        raise CaptureOverflow(f"{pane.target}: capture exceeded {self.max_bytes} bytes")
                    chunks.append(chunk)
                err = proc.stderr.read()
                returncode = proc.wait()
            finally:
                timer.cancel()
        if expired.is_set():
            raise CaptureTimeout(f"{pane.target}: capture took longer than {self.timeout:g}s")
        if returncode != 0:
            msg = err.decode(errors="replace").strip()
            raise CaptureError(f"{pane.target}: {msg or f'exit status {returncode}'}")
        return b"".join(chunks)

    def estimate(self, pane: PaneHandle) -> HistoryEstimate | None:
        if pane in self._cache:
            return self._cache[pane]
        try:
            estimate = HistoryEstimate(pane=pane, byte_count=len(self.capture(pane)))
        except CaptureError as e:
            msg = f"no history estimate for {e}"
            self.warnings.append(msg)
            print(f"warning: {msg}", file=sys.stderr)
            estimate = None
        self._cache[pane] = estimate
        return estimate
