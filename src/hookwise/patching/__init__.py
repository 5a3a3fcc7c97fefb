"""Patch application: in-memory splicing plus backed-up commits."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from ..models import Suggestion
from .backup import BackupRef, commit, list_backups, read_backup_source, restore_backup, write_backup
from .engine import ApplyResult, Priority, TextBuffer, apply, order_suggestions


class PatchEngine:
    """Applies suggestion batches and commits them behind a backup."""

    def __init__(self, backup_dir: Path, priority: Optional[Priority] = None):
        self.backup_dir = Path(backup_dir)
        self.priority = priority

    def apply(self, file_path: Path, current_content: str, suggestions: Iterable[Suggestion]) -> ApplyResult:
        return apply(file_path, current_content, suggestions, self.priority)

    def commit(
        self, file_path: Path, new_content: str, expected_content: Optional[str] = None
    ) -> Optional[BackupRef]:
        return commit(file_path, new_content, self.backup_dir, expected_content)


__all__ = [
    "PatchEngine",
    "ApplyResult",
    "BackupRef",
    "TextBuffer",
    "apply",
    "commit",
    "list_backups",
    "order_suggestions",
    "read_backup_source",
    "restore_backup",
    "write_backup",
]
