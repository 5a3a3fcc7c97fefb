"""Analyzer exceptions: subprocess timeouts and failures."""

from pathlib import Path
from typing import Optional

from .base import HookwiseError


class AnalyzerError(HookwiseError):
    """Base class for analyzer invocation errors."""

    pass


class AnalyzerTimeoutError(AnalyzerError):
    """Raised when an analyzer process exceeds its time limit."""

    def __init__(self, analyzer: str, filepath: Path, timeout_seconds: float):
        super().__init__(
            f"Analyzer '{analyzer}' exceeded {timeout_seconds}s timeout",
            details={"analyzer": analyzer, "filepath": str(filepath)},
        )
        self.analyzer = analyzer
        self.filepath = filepath
        self.timeout_seconds = timeout_seconds


class AnalyzerProcessError(AnalyzerError):
    """Raised when an analyzer process fails without usable output."""

    def __init__(
        self,
        analyzer: str,
        filepath: Path,
        reason: str,
        returncode: Optional[int] = None,
    ):
        details = {"analyzer": analyzer, "filepath": str(filepath), "reason": reason}
        if returncode is not None:
            details["returncode"] = str(returncode)
        super().__init__(f"Analyzer '{analyzer}' failed on {filepath}", details=details)
        self.analyzer = analyzer
        self.filepath = filepath
        self.reason = reason
        self.returncode = returncode
