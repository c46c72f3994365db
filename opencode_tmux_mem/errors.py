"""Exceptions raised by the scanning, resolving and capture stages."""


class ToolUnavailable(Exception):
    """An external tool could not be run or gave no usable answer."""

    def __init__(self, tool: str, reason: str = ""):
        self.tool = tool
        self.reason = reason
        msg = f"{tool} unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ToolFailed(ToolUnavailable):
    """The tool ran but exited non-zero or timed out."""


class ScanError(ToolUnavailable):
    """Process enumeration failed; no report can be produced."""


class ParseError(ValueError):
    """A memory token could not be turned into a byte count."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"cannot parse memory value: {token!r}")


class CaptureError(Exception):
    pass


class CaptureTimeout(CaptureError):
    pass


class CaptureOverflow(CaptureError):
    pass
