"""Analyzer invocation: external processes speaking the Suggestion Protocol."""

from .base import Analyzer
from .invoker import NONINTERACTIVE_ENV, ProcessAnalyzer, invoke
from .registry import discover_analyzers, resolve_analyzers

__all__ = [
    "Analyzer",
    "ProcessAnalyzer",
    "NONINTERACTIVE_ENV",
    "invoke",
    "discover_analyzers",
    "resolve_analyzers",
]
