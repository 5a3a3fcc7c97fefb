"""Base class for analyzers."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from ..models import AnalyzerResult, CandidateFile


class Analyzer(ABC):
    """Something that inspects one file and reports suggestions."""

    name: str

    @abstractmethod
    def invoke(
        self,
        candidate: CandidateFile,
        timeout_seconds: float,
        cancel: Optional[threading.Event] = None,
    ) -> AnalyzerResult:
        """Analyze ``candidate``. Must return within ``timeout_seconds``
        and never raise for analyzer-side failures."""
        ...
