"""Value types shared by the scanner, resolver, aggregator and formatters."""
from dataclasses import dataclass, field

UNKNOWN_PANE = "?"


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    pid: int
    command_line: str
    swap_bytes: int | None = None  # None: not measured, never zero
    physical_bytes: int | None = None
    rss_bytes: int | None = None


@dataclass(slots=True, frozen=True)
class PaneHandle:
    """A tmux pane. Identity is session, window index and pane index only."""

    session: str
    window_index: int
    pane_index: int
    window_name: str = field(default="", compare=False)
    history_size: int | None = field(default=None, compare=False)
    history_limit: int | None = field(default=None, compare=False)

    @property
    def target(self) -> str:
        return f"{self.session}:{self.window_index}.{self.pane_index}"

    @property
    def history_lines(self) -> str | None:
        if self.history_size is None or self.history_limit is None:
            return None
        return f"{self.history_size}/{self.history_limit}"

    def __str__(self) -> str:
        return self.target


@dataclass(slots=True, frozen=True)
class HistoryEstimate:
    """Captured scrollback size. A lower bound, not tmux's own accounting."""

    pane: PaneHandle
    byte_count: int
    lower_bound: bool = True


@dataclass(slots=True, frozen=True)
class ReportRow:
    process: ProcessRecord
    pane: PaneHandle | None = None
    history: HistoryEstimate | None = None

    @property
    def pid(self) -> int:
        return self.process.pid


@dataclass(slots=True, frozen=True)
class PaneRow:
    pane: PaneHandle | None
    pids: tuple[int, ...]
    swap_bytes: int | None
    physical_bytes: int | None
    rss_bytes: int | None
    history: HistoryEstimate | None = None
