"""
Logging configuration for Hookwise.

Rich-formatted terminal logging plus an optional plain-text action log.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(
    verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging with rich handler for colored output.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging
        log_file: Optional action log path; receives INFO and above regardless
                  of terminal verbosity

    Returns:
        Configured logger instance for hookwise
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    console = Console(stderr=True)

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=True,
        show_path=verbose,
    )
    rich_handler.setLevel(level)
    handlers: list[logging.Handler] = [rich_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(min(level, logging.INFO))
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=min(h.level for h in handlers),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger("hookwise")
    logger.setLevel(min(h.level for h in handlers))

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Module name (e.g., 'hookwise.coordinator')
              If None, returns the root hookwise logger

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger("hookwise")

    if not name.startswith("hookwise"):
        name = f"hookwise.{name}"

    return logging.getLogger(name)
