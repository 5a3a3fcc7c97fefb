"""The run command: analyze files and decide on their suggestions."""

import json
import threading
from pathlib import Path
from typing import List, Optional

import click
import typer

from ..candidates import staged_files
from ..exceptions import HookwiseError
from ..logging_config import setup_logging
from ..models import RunSummary
from . import app
from ._common import console, err_console, find_root, resolve_config, resolve_path
from ._summary import print_summary


@app.command()
def run(
    files: Optional[List[Path]] = typer.Argument(
        None,
        help="Files to process (default: files staged in git)",
    ),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="interactive | auto | preview | skip | ask",
        click_type=click.Choice(["interactive", "auto", "preview", "skip", "ask"], case_sensitive=False),
    ),
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for an answer at each prompt (5-300)",
    ),
    analyzer_timeout: Optional[int] = typer.Option(
        None,
        "--analyzer-timeout",
        help="Seconds one analyzer may spend on one file (1-300)",
    ),
    max_file_size: Optional[int] = typer.Option(
        None,
        "--max-file-size",
        help="Skip files larger than this many bytes",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "-w",
        "--workers",
        help="Files analyzed in parallel",
        min=1,
        max=32,
    ),
    default_action: Optional[str] = typer.Option(
        None,
        "--default-action",
        help="What an unanswered prompt does: skip | apply",
        click_type=click.Choice(["skip", "apply"], case_sensitive=False),
    ),
    analyzer: Optional[List[str]] = typer.Option(
        None,
        "--analyzer",
        "-a",
        help="Analyzer to run; repeat for several, highest priority first",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    repo: Optional[Path] = typer.Option(
        None,
        "-C",
        "--repo",
        help="Repository root (default: the repository containing the current directory)",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the run summary as JSON",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only log errors",
    ),
):
    """
    Run analyzers over files and apply, preview or skip their suggestions.

    Every rewritten file is backed up first. Files that cannot be analyzed
    are reported, never block the others, and never change.

    [bold cyan]Examples:[/bold cyan]

      hookwise run

      hookwise run --mode preview src/app.py

      hookwise run --mode auto --analyzer security --analyzer docs

      hookwise run --json --mode skip
    """
    logger = setup_logging(verbose=verbose, quiet=quiet)
    out = err_console if json_output else console
    cancel = threading.Event()

    try:
        root = find_root(repo)
        settings = resolve_config(
            root,
            config_file=config,
            mode=mode.lower() if mode else None,
            timeout_seconds=timeout,
            analyzer_timeout_seconds=analyzer_timeout,
            max_file_size=max_file_size,
            workers=workers,
            default_action=default_action.lower() if default_action else None,
            analyzers=list(analyzer) if analyzer else None,
        )
        if settings.log_file:
            logger = setup_logging(
                verbose=verbose, quiet=quiet, log_file=str(resolve_path(root, settings.log_file))
            )

        targets = list(files) if files else staged_files(root)
        if not targets:
            out.print("[dim]No files to process[/dim]")
            summary = RunSummary(mode=settings.mode)
        else:
            from ..coordinator import run as run_pipeline
            from ..decisions import ConsolePrompter

            summary = run_pipeline(
                targets,
                settings,
                root_dir=root,
                prompter=ConsolePrompter(console=out, cancel=cancel),
                cancel=cancel,
            )

    except HookwiseError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        cancel.set()
        logger.info("Run interrupted by user")
        err_console.print("\n[yellow]Run interrupted[/yellow]")
        raise typer.Exit(130)

    if json_output:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print_summary(summary, console)
