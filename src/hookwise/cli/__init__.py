"""CLI entry point; registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="hookwise",
    help="Hookwise - interactive enhancement pipeline for commit hooks",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
):
    """Run analyzers on changed files and decide what to do with their suggestions."""
    if version:
        console.print(f"[bold cyan]Hookwise[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# Import subcommands to register them
from .run import run as _run  # noqa: F401, E402
from .prefs import prefs_app  # noqa: E402
from .backups import backups as _backups, restore as _restore  # noqa: F401, E402

app.add_typer(prefs_app, name="prefs")
