"""Render report rows as table, JSON, CSV, YAML or Markdown.

Rows are first flattened into records: dicts keyed by column name whose byte
columns hold an int or None. Every renderer takes the same records, so the
formats differ only in syntax. Text formats show a placeholder for absent
values, JSON and YAML emit null. JSON, CSV and YAML keep raw byte counts and
add a "<column> (human)" field beside each.
"""
import csv
import io
import json

import yaml

from opencode_tmux_mem.models import UNKNOWN_PANE, PaneRow, ReportRow
from opencode_tmux_mem.units import human_bytes

FORMATS = ("table", "json", "csv", "yaml", "markdown")
FORMAT_ALIASES = {"yml": "yaml", "md": "markdown"}
EXTENSION_FORMATS = {
    ".json": "json",
    ".csv": "csv",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".markdown": "markdown",
}

PANE_COLUMN = "Tmux window.pane"
PROCESS_COLUMNS = (
    "PID", PANE_COLUMN, "Window", "Swap", "Physical", "RSS", "PaneHistory", "History lines", "Command",
)
PANE_COLUMNS = (
    PANE_COLUMN, "Window", "Processes", "PIDs", "Swap", "Physical", "RSS", "PaneHistory", "History lines",
)
BYTE_COLUMNS = frozenset({"Swap", "Physical", "RSS", "PaneHistory"})
NUMERIC_COLUMNS = BYTE_COLUMNS | {"PID", "Processes"}

PLACEHOLDER = "-"


def normalize_format(name: str) -> str:
    fmt = name.lower()
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    if fmt not in FORMATS:
        raise ValueError(f"unsupported format: {name}")
    return fmt


def infer_format(path: str) -> str | None:
    lower = path.lower()
    for ext, fmt in EXTENSION_FORMATS.items():
        if lower.endswith(ext):
            return fmt
    return None


def process_records(rows: list[ReportRow]) -> list[dict]:
    records = []
    for r in rows:
        p = r.process
        records.append({
            "PID": p.pid,
            PANE_COLUMN: r.pane.target if r.pane else None,
            "Window": r.pane.window_name if r.pane else None,
            "Swap": p.swap_bytes,
            "Physical": p.physical_bytes,
            "RSS": p.rss_bytes,
            "PaneHistory": r.history.byte_count if r.history else None,
            "History lines": r.pane.history_lines if r.pane else None,
            "Command": p.command_line,
        })
    return records


def pane_records(rows: list[PaneRow]) -> list[dict]:
    records = []
    for g in rows:
        records.append({
            PANE_COLUMN: g.pane.target if g.pane else None,
            "Window": g.pane.window_name if g.pane else None,
            "Processes": len(g.pids),
            "PIDs": list(g.pids),
            "Swap": g.swap_bytes,
            "Physical": g.physical_bytes,
            "RSS": g.rss_bytes,
            "PaneHistory": g.history.byte_count if g.history else None,
            "History lines": g.pane.history_lines if g.pane else None,
        })
    return records


def human_column(column: str) -> str:
    return f"{column} (human)"


def _structured_columns(columns) -> tuple:
    out = []
    for c in columns:
        out.append(c)
        if c in BYTE_COLUMNS:
            out.append(human_column(c))
    return tuple(out)


def _project(records: list[dict], columns) -> list[dict]:
    """Select columns, adding a readable size after every byte count."""
    projected = []
    for r in records:
        row = {}
        for c in columns:
            row[c] = r.get(c)
            if c in BYTE_COLUMNS:
                row[human_column(c)] = human_bytes(row[c]) if row[c] is not None else None
        projected.append(row)
    return projected


def _cell(column: str, value, human: bool = True) -> str:
    if value is None:
        return UNKNOWN_PANE if column == PANE_COLUMN else PLACEHOLDER
    if column in BYTE_COLUMNS:
        return human_bytes(value) if human else str(value)
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(value)


def _totals(records: list[dict]) -> list[tuple[str, str]]:
    def total(column):
        present = [r[column] for r in records if r.get(column) is not None]
        return human_bytes(sum(present)) if present else PLACEHOLDER

    # a pane's history is counted once however many processes it hosts
    per_pane: dict[str, int] = {}
    for r in records:
        target, hist = r.get(PANE_COLUMN), r.get("PaneHistory")
        if target is not None and hist is not None:
            per_pane[target] = max(per_pane.get(target, 0), hist)
    hist_total = human_bytes(sum(per_pane.values())) if per_pane else PLACEHOLDER
    return [
        ("Total swap:", total("Swap")),
        ("Total physical:", total("Physical")),
        ("Total RSS:", total("RSS")),
        ("Total pane history bytes:", hist_total),
    ]


def render_table(records: list[dict], columns=PROCESS_COLUMNS) -> str:
    cells = [[_cell(c, r.get(c)) for c in columns] for r in records]
    widths = [max([len(c)] + [len(row[i]) for row in cells]) for i, c in enumerate(columns)]

    def line(values):
        out = []
        for i, (c, v) in enumerate(zip(columns, values)):
            if i == len(columns) - 1:
                out.append(v)
            elif c in NUMERIC_COLUMNS:
                out.append(f"{v:>{widths[i]}}")
            else:
                out.append(f"{v:<{widths[i]}}")
        return "  ".join(out).rstrip()

    lines = [line(columns)]
    lines.extend(line(row) for row in cells)
    lines.append("")
    totals = _totals(records)
    label_w = max(len(label) for label, _ in totals)
    lines.extend(f"{label:<{label_w}} {value}" for label, value in totals)
    return "\n".join(lines) + "\n"


def render_markdown(records: list[dict], columns=PROCESS_COLUMNS) -> str:
    def esc(text: str) -> str:
        return text.replace("|", "\\|").replace("\n", " ")

    lines = [
        "| " + " | ".join(columns) + " |",
        "|" + "|".join("---:" if c in NUMERIC_COLUMNS else "---" for c in columns) + "|",
    ]
    for r in records:
        lines.append("| " + " | ".join(esc(_cell(c, r.get(c))) for c in columns) + " |")
    return "\n".join(lines) + "\n"


def render_csv(records: list[dict], columns=PROCESS_COLUMNS) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    out_columns = _structured_columns(columns)
    writer.writerow(out_columns)
    for r in _project(records, columns):
        writer.writerow([_cell(c, r[c], human=False) for c in out_columns])
    return buf.getvalue()


def render_json(records: list[dict], columns=PROCESS_COLUMNS) -> str:
    return json.dumps(_project(records, columns), indent=2) + "\n"


def render_yaml(records: list[dict], columns=PROCESS_COLUMNS) -> str:
    return yaml.safe_dump(
        _project(records, columns), sort_keys=False, explicit_start=True, allow_unicode=True,
    )


RENDERERS = {
    "table": render_table,
    "json": render_json,
    "csv": render_csv,
    "yaml": render_yaml,
    "markdown": render_markdown,
}


def render(fmt: str, records: list[dict], columns=PROCESS_COLUMNS) -> str:
    return RENDERERS[normalize_format(fmt)](records, columns)
