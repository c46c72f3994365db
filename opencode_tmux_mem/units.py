"""Parse and render memory sizes.

Every magnitude suffix is binary: ``vmmap`` prints compact sizes such as
``12.5M`` in 1024 steps and ``/proc`` reports ``kB`` meaning KiB.
"""
import re

from opencode_tmux_mem.errors import ParseError

_MULTIPLIERS = {
    "": 1,
    "k": 1024,
    "m": 1024 ** 2,
    "g": 1024 ** 3,
    "t": 1024 ** 4,
    "p": 1024 ** 5,
}
_TOKEN_RE = re.compile(r"^(\d+(?:\.\d+)?|\.\d+)\s*(?:([kmgtp])(?:i?b)?|b)?$", re.IGNORECASE)

HUMAN_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def parse_bytes(token: str) -> int:
    """Return the byte count for a token like ``1024``, ``1.5M`` or ``12 kB``.

    Raises ParseError for anything that is not a non-negative number with an
    optional suffix.
    """
    if not isinstance(token, str):
        raise ParseError(repr(token))
    m = _TOKEN_RE.match(token.strip())
    if m is None:
        raise ParseError(token)
    number, unit = m.group(1), (m.group(2) or "").lower()
    if "." in number:
        return int(float(number) * _MULTIPLIERS[unit])
    return int(number) * _MULTIPLIERS[unit]


def human_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = float(size)
    i = 0
    while value >= 1024.0 and i < len(HUMAN_UNITS) - 1:
        value /= 1024.0
        i += 1
    return f"{value:.2f} {HUMAN_UNITS[i]}"
