"""Run external tools with a timeout."""
import subprocess

from opencode_tmux_mem.errors import ToolFailed, ToolUnavailable

TOOL_TIMEOUT = 5.0


def run_tool(cmd: list[str], timeout: float = TOOL_TIMEOUT) -> str:
    """Run cmd and return its stdout.

    A missing binary raises ToolUnavailable; a non-zero exit or a timeout
    raises its subclass ToolFailed. Output is decoded as UTF-8, undecodable
    bytes become U+FFFD.
    """
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=timeout)
    except FileNotFoundError:
        raise ToolUnavailable(cmd[0], "not installed") from None
    except subprocess.TimeoutExpired:
        raise ToolFailed(cmd[0], f"timed out after {timeout:g}s") from None
    except OSError as e:
        raise ToolUnavailable(cmd[0], str(e)) from e
    if result.returncode != 0:
        msg = result.stderr.decode(errors="replace").strip().splitlines()[-1:]
        tail = msg[0] if msg else f"exit status {result.returncode}"
        raise ToolFailed(cmd[0], tail)
    return result.stdout.decode(errors="replace")
