"""Patch exceptions: stale suggestions and backup failures."""

from pathlib import Path
from typing import Optional

from .base import HookwiseError

# StaleSuggestionError reasons
MISMATCH = "mismatch"
OUT_OF_RANGE = "out_of_range"


class PatchError(HookwiseError):
    """Base class for patch application errors.

    ``backup_path`` is set when a backup was written before the failure.
    """

    backup_path: Optional[Path] = None


class StaleSuggestionError(PatchError):
    """Raised when a suggestion no longer matches the content it targets.

    ``reason`` separates text drift (``mismatch``) from line indexes that
    fall outside the content (``out_of_range``), which usually points at a
    buggy analyzer rather than a concurrent edit.
    """

    def __init__(self, suggestion_id: str, reason: str, filepath: Optional[Path] = None):
        details = {"suggestion": suggestion_id, "reason": reason}
        if filepath is not None:
            details["filepath"] = str(filepath)
        super().__init__("Stale suggestion", details=details)
        self.suggestion_id = suggestion_id
        self.reason = reason
        self.filepath = filepath


class BackupFailureError(PatchError):
    """Raised when the pre-mutation backup cannot be written."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot back up {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason
