"""Rich renderables for file reports and proposed changes."""

from __future__ import annotations

import difflib
from typing import List, Sequence

from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from ..models import FileReport, Severity, Suggestion

SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def suggestion_table(suggestions: Sequence[Suggestion]) -> Table:
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Line", justify="right")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Analyzer", style="blue")
    table.add_column("Rationale")
    for i, s in enumerate(suggestions, 1):
        table.add_row(
            str(i),
            str(s.line_range),
            Text(s.severity.value, style=SEVERITY_STYLES[s.severity]),
            s.category.value,
            s.analyzer_name,
            s.rationale,
        )
    return table


def report_header(report: FileReport, position: int, total: int) -> Text:
    text = Text()
    text.append(f"File {position}/{total}: ", style="bold")
    text.append(str(report.path))
    count = len(report.suggestions)
    text.append(f"  ({count} suggestion{'s' if count != 1 else ''})", style="dim")
    return text


def unified_diff(path: str, before: str, after: str) -> str:
    lines: List[str] = list(
        difflib.unified_diff(
            before.splitlines(keepends=True),
            after.splitlines(keepends=True),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
        )
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def diff_view(path: str, before: str, after: str):
    diff = unified_diff(path, before, after)
    if not diff:
        return Text("No changes", style="dim")
    return Syntax(diff, "diff", theme="ansi_dark", word_wrap=True)
