"""Configuration and run-level exceptions."""

from typing import Any, List

from .base import HookwiseError


class ConfigurationError(HookwiseError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class UnknownAnalyzerError(ConfigurationError):
    """Raised when a configured analyzer cannot be resolved."""

    def __init__(self, names: List[str], available: List[str]):
        super().__init__(
            f"Unknown analyzer(s): {', '.join(names)}",
            details={"key": "analyzers", "available": ", ".join(available) or "none"},
        )
        self.names = names
        self.available = available


class CoordinatorIOError(HookwiseError):
    """Raised when the run cannot read repository state at all."""

    def __init__(self, reason: str):
        super().__init__(f"Cannot enumerate candidate files: {reason}", details={"reason": reason})
        self.reason = reason
