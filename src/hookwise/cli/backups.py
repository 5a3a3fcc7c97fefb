"""Backup listing and restore commands."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..exceptions import HookwiseError
from ..patching import list_backups, read_backup_source, restore_backup
from . import app
from ._common import console, find_root, resolve_config, resolve_path


def _backup_dir(repo: Optional[Path]) -> Path:
    root = find_root(repo)
    return resolve_path(root, resolve_config(root).backup_dir)


@app.command()
def backups(
    name: Optional[str] = typer.Argument(
        None, help="Only backups of this file: an existing path, or a bare file name"
    ),
    repo: Optional[Path] = typer.Option(
        None, "-C", "--repo", help="Repository root", exists=True, file_okay=False, dir_okay=True
    ),
):
    """List backups taken before files were rewritten, newest first."""
    try:
        backup_dir = _backup_dir(repo)
    except HookwiseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if name is not None and Path(name).is_file():
        refs = list_backups(backup_dir, source=Path(name))
    else:
        refs = list_backups(backup_dir, name)
    if not refs:
        console.print(f"[dim]No backups in {backup_dir}[/dim]")
        return

    table = Table(title="Backups", show_lines=False, pad_edge=True)
    table.add_column("Created", style="green")
    table.add_column("File", style="bold")
    table.add_column("Source", style="dim")
    table.add_column("Backup", style="cyan")
    for ref in refs:
        table.add_row(
            ref.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            ref.original_name,
            str(ref.source) if ref.source else "-",
            str(ref.path),
        )
    console.print(table)


@app.command()
def restore(
    backup: Path = typer.Argument(..., help="Backup file", exists=True, dir_okay=False, readable=True),
    target: Optional[Path] = typer.Argument(
        None, help="File to restore into (default: the file the backup was taken from)", dir_okay=False
    ),
    repo: Optional[Path] = typer.Option(
        None, "-C", "--repo", help="Repository root", exists=True, file_okay=False, dir_okay=True
    ),
):
    """Restore a backup into TARGET. TARGET's current content is backed up first."""
    if target is None:
        target = read_backup_source(backup)
        if target is None:
            console.print(f"[red]Error:[/red] {backup} does not record its source file; give a TARGET")
            raise typer.Exit(1)
    try:
        ref = restore_backup(backup, target, _backup_dir(repo))
    except HookwiseError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Restored[/green] {target} from {backup}")
    if ref is not None:
        console.print(f"[dim]Previous content saved to {ref.path}[/dim]")
