"""Rich rendering of a RunSummary."""

from rich.console import Console
from rich.table import Table

from ..models import Outcome, RunSummary

_STATE_STYLES = {
    Outcome.APPLIED: "green",
    Outcome.SKIPPED: "yellow",
    Outcome.ABORTED: "magenta",
    Outcome.ERROR: "red",
    Outcome.CLEAN: "dim",
}


def print_summary(summary: RunSummary, console: Console) -> None:
    if summary.outcomes:
        table = Table(title="Enhancement Summary", show_lines=False, pad_edge=True)
        table.add_column("File", style="bold")
        table.add_column("Outcome")
        table.add_column("Applied", justify="right")
        table.add_column("Dropped", justify="right", style="dim")
        table.add_column("Note", style="dim")

        for o in summary.sorted_outcomes():
            style = _STATE_STYLES[o.state]
            table.add_row(
                str(o.path),
                f"[{style}]{o.state.value}[/{style}]",
                f"{o.applied}/{o.total}" if o.total else "-",
                str(len(o.dropped)) if o.dropped else "",
                o.reason or "",
            )

        console.print()
        console.print(table)

    console.print(
        f"[bold]{summary.processed}[/bold] processed, "
        f"[green]{summary.applied} applied[/green], "
        f"[yellow]{summary.skipped} skipped[/yellow], "
        f"[red]{summary.errored} errored[/red], "
        f"{summary.clean} clean "
        f"[dim]({summary.elapsed:.2f}s, mode={summary.mode})[/dim]"
    )
    for name, count in sorted(summary.out_of_range_by_analyzer.items()):
        console.print(f"[yellow]{name}[/yellow]: {count} suggestion(s) referenced lines outside the file")
