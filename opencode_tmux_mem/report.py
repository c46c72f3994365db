"""Join processes, pane ownership and history estimates into report rows."""
from collections.abc import Callable, Iterable, Mapping

from opencode_tmux_mem.history import HistoryEstimator
from opencode_tmux_mem.models import (
    UNKNOWN_PANE,
    HistoryEstimate,
    PaneHandle,
    PaneRow,
    ProcessRecord,
    ReportRow,
)
from opencode_tmux_mem.panes import PaneResolver
from opencode_tmux_mem.scanner import ProcessScanner


def row_sort_key(row: ReportRow) -> tuple[int, int]:
    # absent swap sorts as zero; it is still rendered as absent
    return (-(row.process.swap_bytes or 0), row.process.pid)


def aggregate(
    processes: Iterable[ProcessRecord],
    ownership: Mapping[int, PaneHandle] | Callable[[int], PaneHandle | None],
    history_lookup: Callable[[PaneHandle], HistoryEstimate | None] | None = None,
) -> list[ReportRow]:
    """Build one row per process and order them by swap desc, pid asc.

    ``ownership`` is a pid -> pane mapping or a lookup such as
    ``PaneResolver.owner_of``. ``history_lookup`` is None when history
    estimation is off; it is only consulted for rows with a pane.
    """
    owner = ownership.get if isinstance(ownership, Mapping) else ownership
    rows: dict[int, ReportRow] = {}
    for proc in processes:
        if proc.pid in rows:
            continue
        pane = owner(proc.pid)
        history = None
        if pane is not None and history_lookup is not None:
            history = history_lookup(pane)
        rows[proc.pid] = ReportRow(process=proc, pane=pane, history=history)
    return sorted(rows.values(), key=row_sort_key)


def _sum_present(values: Iterable[int | None]) -> int | None:
    present = [v for v in values if v is not None]
    return sum(present) if present else None


def group_by_pane(rows: Iterable[ReportRow]) -> list[PaneRow]:
    """Fold process rows into one row per pane; unknown owners share a row."""
    groups: dict[PaneHandle | None, list[ReportRow]] = {}
    for r in rows:
        groups.setdefault(r.pane, []).append(r)

    pane_rows = []
    for pane, members in groups.items():
        estimates = [m.history for m in members if m.history is not None]
        pane_rows.append(
            PaneRow(
                pane=pane,
                pids=tuple(sorted(m.pid for m in members)),
                swap_bytes=_sum_present(m.process.swap_bytes for m in members),
                physical_bytes=_sum_present(m.process.physical_bytes for m in members),
                rss_bytes=_sum_present(m.process.rss_bytes for m in members),
                history=max(estimates, key=lambda h: h.byte_count) if estimates else None,
            )
        )
    pane_rows.sort(
        key=lambda g: (
            -(g.swap_bytes or 0),
            -(g.physical_bytes or 0),
            g.pane.target if g.pane is not None else UNKNOWN_PANE,
        )
    )
    return pane_rows


def collect(
    match_mode: str,
    pattern: str,
    history: bool = True,
    scanner: ProcessScanner | None = None,
    resolver: PaneResolver | None = None,
    estimator: HistoryEstimator | None = None,
) -> list[ReportRow]:
    """Run scan, resolve, estimate and aggregate. Raises ScanError if the
    process listing itself fails."""
    scanner = scanner or ProcessScanner()
    resolver = resolver or PaneResolver()
    processes = scanner.scan(match_mode, pattern)
    resolver.resolve()
    lookup = None
    if history:
        lookup = (estimator or HistoryEstimator()).estimate
    return aggregate(processes, resolver.owner_of, lookup)
