"""Exception hierarchy for Hookwise."""

from .analyzer import AnalyzerError, AnalyzerProcessError, AnalyzerTimeoutError
from .base import HookwiseError
from .config import (
    ConfigurationError,
    CoordinatorIOError,
    InvalidConfigError,
    UnknownAnalyzerError,
)
from .patch import BackupFailureError, PatchError, StaleSuggestionError

__all__ = [
    "HookwiseError",
    "AnalyzerError",
    "AnalyzerTimeoutError",
    "AnalyzerProcessError",
    "PatchError",
    "StaleSuggestionError",
    "BackupFailureError",
    "ConfigurationError",
    "InvalidConfigError",
    "UnknownAnalyzerError",
    "CoordinatorIOError",
]
