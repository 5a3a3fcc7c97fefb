"""Saved preference commands."""

from pathlib import Path
from typing import Optional

import typer

from ..config import EnhancerConfig, load_config
from ..exceptions import HookwiseError
from ._common import console, find_root, preference_store

prefs_app = typer.Typer(help="Show or change saved preferences", no_args_is_help=True)

_REPO_OPTION = typer.Option(
    None,
    "-C",
    "--repo",
    help="Repository root (default: the repository containing the current directory)",
    exists=True,
    file_okay=False,
    dir_okay=True,
)


def _store(repo: Optional[Path]):
    try:
        return preference_store(find_root(repo))
    except HookwiseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@prefs_app.command("show")
def show(repo: Optional[Path] = _REPO_OPTION):
    """List saved preferences."""
    store = _store(repo)
    prefs = store.load()
    console.print(f"[bold cyan]Preferences[/bold cyan] [dim]({store.path})[/dim]")
    if not prefs:
        console.print("[dim]No saved preferences[/dim]")
        return
    for key, value in sorted(prefs.items()):
        console.print(f"  {key} = [green]{value}[/green]")


@prefs_app.command("set")
def set_(
    key: str = typer.Argument(..., help="Setting name, e.g. mode or timeout_seconds"),
    value: str = typer.Argument(..., help="New value"),
    repo: Optional[Path] = _REPO_OPTION,
):
    """Save a preference after checking it is a valid setting."""
    if key not in EnhancerConfig.__dataclass_fields__:
        console.print(f"[red]Error:[/red] Unknown setting: {key}")
        raise typer.Exit(1)
    store = _store(repo)
    try:
        load_config(preferences={key: value}, root_dir=find_root(repo))
    except HookwiseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    store.set(key, value)
    console.print(f"[green]Saved[/green] {key} = {value}")


@prefs_app.command("unset")
def unset(
    key: str = typer.Argument(..., help="Setting name"),
    repo: Optional[Path] = _REPO_OPTION,
):
    """Remove one saved preference."""
    if _store(repo).unset(key):
        console.print(f"[green]Removed[/green] {key}")
    else:
        console.print(f"[yellow]{key} is not set[/yellow]")


@prefs_app.command("clear")
def clear(repo: Optional[Path] = _REPO_OPTION):
    """Remove all saved preferences."""
    _store(repo).clear()
    console.print("[green]Preferences cleared[/green]")
