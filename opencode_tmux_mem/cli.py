#!/usr/bin/env python3
"""
opencode-tmux-mem: which tmux pane is holding the memory?

Finds processes matching a name, works out the tmux pane each one runs in,
and prints swap, physical footprint, RSS and an estimate of the pane's
scrollback size, largest swap first.

Examples:
  opencode-tmux-mem
  opencode-tmux-mem --process node --match-mode exact --view pane
  opencode-tmux-mem --format json --export report.yaml
"""
import argparse
import sys

from opencode_tmux_mem.errors import ScanError
from opencode_tmux_mem.formatters import (
    FORMAT_ALIASES,
    FORMATS,
    PANE_COLUMNS,
    PROCESS_COLUMNS,
    infer_format,
    normalize_format,
    pane_records,
    process_records,
    render,
)
from opencode_tmux_mem.history import HistoryEstimator
from opencode_tmux_mem.panes import MAX_ANCESTRY_DEPTH, PaneResolver
from opencode_tmux_mem.report import collect, group_by_pane
from opencode_tmux_mem.scanner import MATCH_MODES, ProcessScanner
from opencode_tmux_mem.tools import TOOL_TIMEOUT

DEFAULT_PROCESS = "opencode"
DEFAULT_EXPORT_FORMAT = "json"
VIEWS = ("process", "pane")


def _format_arg(value: str) -> str:
    try:
        return normalize_format(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def parse_args(argv=None):
    ap = argparse.ArgumentParser(
        prog="opencode-tmux-mem",
        description="Report memory use of matching processes per tmux pane.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Formats: {', '.join(FORMATS)} (aliases: {', '.join(FORMAT_ALIASES)})",
    )
    ap.add_argument("--process", default=DEFAULT_PROCESS, metavar="PATTERN",
                    help=f"process name or command-line pattern (default: {DEFAULT_PROCESS})")
    ap.add_argument("--match-mode", default="exact", choices=MATCH_MODES,
                    help="exact: process name equals PATTERN; full: command line contains it (default: exact)")
    ap.add_argument("--view", default="process", choices=VIEWS,
                    help="one row per process or per pane (default: process)")
    ap.add_argument("--format", default="table", type=_format_arg, metavar="FMT",
                    help="stdout format (default: table)")
    ap.add_argument("--export", metavar="PATH", help="also write the report to PATH")
    ap.add_argument("--export-format", type=_format_arg, metavar="FMT",
                    help=f"export format (default: from PATH extension, else {DEFAULT_EXPORT_FORMAT})")
    ap.add_argument("--no-history-bytes", action="store_true",
                    help="skip tmux capture-pane scrollback estimation")
    ap.add_argument("--max-depth", type=int, default=MAX_ANCESTRY_DEPTH, metavar="N",
                    help=f"parent hops to search for an owning pane (default: {MAX_ANCESTRY_DEPTH})")
    ap.add_argument("--timeout", type=float, default=TOOL_TIMEOUT, metavar="SECONDS",
                    help=f"timeout for each external tool call (default: {TOOL_TIMEOUT:g})")
    ap.add_argument("-v", "--verbose", action="store_true", help="verbose output on stderr")
    return ap.parse_args(argv)


def run(args) -> int:
    def log(msg: str) -> None:
        if args.verbose:
            print(msg, file=sys.stderr)

    history = not args.no_history_bytes
    estimator = None
    if history:
        estimator = HistoryEstimator(timeout=args.timeout)
    log(f"Scanning for '{args.process}' ({args.match_mode} match)")
    try:
        rows = collect(
            args.match_mode,
            args.process,
            history=history,
            scanner=ProcessScanner(),
            resolver=PaneResolver(max_depth=args.max_depth, timeout=args.timeout),
            estimator=estimator,
        )
    except ScanError as e:
        print(f"error: failed to discover processes: {e}", file=sys.stderr)
        return 1
    log(f"Matched {len(rows)} process(es)")

    if args.view == "pane":
        records, columns = pane_records(group_by_pane(rows)), PANE_COLUMNS
    else:
        records, columns = process_records(rows), PROCESS_COLUMNS

    sys.stdout.write(render(args.format, records, columns))

    if args.export:
        fmt = args.export_format or infer_format(args.export) or DEFAULT_EXPORT_FORMAT
        try:
            with open(args.export, "w") as f:
                f.write(render(fmt, records, columns))
        except OSError as e:
            print(f"error: failed writing export file '{args.export}': {e}", file=sys.stderr)
            return 1
        print(f"exported {len(records)} records to {args.export}", file=sys.stderr)
    return 0


def main() -> None:
    sys.exit(run(parse_args()))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
