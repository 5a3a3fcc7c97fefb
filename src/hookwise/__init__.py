"""
Hookwise - interactive enhancement pipeline for commit hooks

Runs pluggable analyzers against changed files, collects their suggestions
and lets the operator apply, preview or discard them, with a backup taken
before any file is rewritten.
"""

__version__ = "0.3.0"

from .config import EnhancerConfig, load_config
from .coordinator import RunCoordinator, run
from .models import FileReport, RunSummary, Suggestion, validate

__all__ = [
    "run",  # Main entry point
    "RunCoordinator",
    "EnhancerConfig",
    "load_config",
    "Suggestion",
    "FileReport",
    "RunSummary",
    "validate",
]
