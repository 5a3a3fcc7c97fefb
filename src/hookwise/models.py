"""Data models for Hookwise"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .exceptions import StaleSuggestionError
from .exceptions.patch import MISMATCH, OUT_OF_RANGE


class Category(str, Enum):
    """Kind of improvement a suggestion proposes."""

    HEADER = "header"
    DOCUMENTATION = "documentation"
    FORMATTING = "formatting"
    SECURITY = "security"
    QUALITY = "quality"
    TONE = "tone"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


DEFAULT_SEVERITY: Dict[Category, Severity] = {
    Category.SECURITY: Severity.ERROR,
    Category.QUALITY: Severity.WARNING,
    Category.DOCUMENTATION: Severity.WARNING,
    Category.HEADER: Severity.INFO,
    Category.FORMATTING: Severity.INFO,
    Category.TONE: Severity.INFO,
}


def split_lines(content: str) -> List[str]:
    """Split content into lines without terminators.

    A trailing newline does not produce an extra empty line, and ``\\r\\n``
    terminators are stripped the same way as ``\\n``.
    """
    if not content:
        return []
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass(frozen=True)
class LineRange:
    """Half-open ``[start, end)`` span of zero-based line numbers."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError("start must be non-negative")
        if self.end < self.start:
            raise ValueError("end must not precede start")

    def __len__(self) -> int:
        return self.end - self.start

    def overlaps(self, other: LineRange) -> bool:
        """True if the spans share a line, or both start on the same line."""
        if self.start == other.start:
            return True
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        if self.end == self.start + 1:
            return str(self.start)
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class Suggestion:
    """One proposed, line-ranged text replacement."""

    id: str
    analyzer_name: str
    category: Category
    line_range: LineRange
    original_text: str
    replacement_text: str
    severity: Severity
    rationale: str

    @property
    def start_line(self) -> int:
        return self.line_range.start

    def original_lines(self) -> List[str]:
        if len(self.line_range) == 0:
            return []
        return self.original_text.split("\n")

    def replacement_lines(self) -> List[str]:
        # An empty replacement deletes the span
        if self.replacement_text == "":
            return []
        return self.replacement_text.split("\n")


def check(suggestion: Suggestion, lines: List[str], filepath: Optional[Path] = None) -> None:
    """Raise StaleSuggestionError unless the suggestion still fits ``lines``."""
    span = suggestion.line_range
    if span.end > len(lines):
        raise StaleSuggestionError(suggestion.id, OUT_OF_RANGE, filepath)
    if "\n".join(lines[span.start:span.end]) != suggestion.original_text:
        raise StaleSuggestionError(suggestion.id, MISMATCH, filepath)


def validate(suggestion: Suggestion, current_content) -> bool:
    """True iff the suggestion's range and original text match ``current_content``.

    ``current_content`` is either the file text or its already-split lines.
    """
    lines = split_lines(current_content) if isinstance(current_content, str) else current_content
    try:
        check(suggestion, lines)
    except StaleSuggestionError:
        return False
    return True


def is_applied(suggestion: Suggestion, lines: List[str]) -> bool:
    """True if the replacement text already occupies the suggestion's span.

    When one of original and replacement is a prefix of the other, both can
    match at the span; the longer one decides. A collapse whose original is
    still present is not applied, and an expansion whose replacement is
    present is. Insertions (empty spans) always match their original, so
    for them only the replacement is compared.
    """
    replacement = suggestion.replacement_lines()
    if not replacement or replacement == suggestion.original_lines():
        return False
    span = suggestion.line_range
    if len(span) >= len(replacement) and span.end <= len(lines):
        if "\n".join(lines[span.start:span.end]) == suggestion.original_text:
            return False
    return lines[span.start:span.start + len(replacement)] == replacement


@dataclass(frozen=True)
class CandidateFile:
    """A file path plus its content at the moment analysis began."""

    path: Path
    content: str

    @property
    def size(self) -> int:
        return len(self.content.encode("utf-8"))

    @classmethod
    def capture(cls, path: Path) -> CandidateFile:
        """Snapshot ``path`` as UTF-8 text, keeping its line terminators."""
        with open(path, encoding="utf-8", newline="") as f:
            return cls(path=Path(path), content=f.read())


class AnalyzerStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class AnalyzerResult:
    """One analyzer's outcome for one file."""

    analyzer_name: str
    file_path: Path
    status: AnalyzerStatus
    suggestions: Tuple[Suggestion, ...] = ()
    elapsed: float = 0.0
    message: Optional[str] = None
    malformed_lines: int = 0
    returncode: Optional[int] = None


class FileStatus(str, Enum):
    CLEAN = "clean"
    NEEDS_DECISION = "needsDecision"
    ERROR = "error"


@dataclass(frozen=True)
class FileReport:
    """All analyzer results for one candidate file."""

    candidate: CandidateFile
    results: Tuple[AnalyzerResult, ...]

    @property
    def path(self) -> Path:
        return self.candidate.path

    @property
    def suggestions(self) -> List[Suggestion]:
        """Union of suggestions, in analyzer priority then emission order."""
        seen = set()
        merged = []
        for result in self.results:
            for suggestion in result.suggestions:
                if suggestion.id not in seen:
                    seen.add(suggestion.id)
                    merged.append(suggestion)
        return merged

    @property
    def status(self) -> FileStatus:
        if self.suggestions:
            return FileStatus.NEEDS_DECISION
        if any(r.status == AnalyzerStatus.ERROR for r in self.results):
            return FileStatus.ERROR
        return FileStatus.CLEAN

    @property
    def diagnostics(self) -> List[str]:
        return [
            f"{r.analyzer_name}: {r.status.value}: {r.message}"
            for r in self.results
            if r.message
        ]


class DropReason(str, Enum):
    OVERLAP = "overlap"
    STALE = "stale"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class DroppedSuggestion:
    suggestion: Suggestion
    reason: DropReason


class Outcome(str, Enum):
    """Terminal state of a file within a run."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    ABORTED = "aborted"
    ERROR = "error"
    CLEAN = "clean"


class Action(str, Enum):
    """What was done with a file's suggestion set."""

    APPLY_ALL = "apply_all"
    APPLY_PARTIAL = "apply_partial"
    PREVIEW = "preview"
    SKIP = "skip"
    QUIT = "quit"
    NONE = "none"


@dataclass
class FileOutcome:
    """Per-file entry of a RunSummary."""

    path: Path
    state: Outcome
    action: Action = Action.NONE
    applied: int = 0
    total: int = 0
    dropped: List[DroppedSuggestion] = field(default_factory=list)
    backup_path: Optional[Path] = None
    reason: Optional[str] = None
    elapsed: float = 0.0
    results: Tuple[AnalyzerResult, ...] = ()

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "state": self.state.value,
            "action": self.action.value,
            "applied": self.applied,
            "total": self.total,
            "dropped": [
                {"id": d.suggestion.id, "analyzer": d.suggestion.analyzer_name, "reason": d.reason.value}
                for d in self.dropped
            ],
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "reason": self.reason,
            "elapsed": round(self.elapsed, 3),
            "analyzers": {r.analyzer_name: r.status.value for r in self.results},
        }


@dataclass
class RunSummary:
    """Aggregate of one run. All counts are order-independent."""

    mode: str
    outcomes: List[FileOutcome] = field(default_factory=list)
    elapsed: float = 0.0

    def _count(self, state: Outcome) -> int:
        return sum(1 for o in self.outcomes if o.state == state)

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def applied(self) -> int:
        return self._count(Outcome.APPLIED)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def errored(self) -> int:
        return self._count(Outcome.ERROR)

    @property
    def clean(self) -> int:
        return self._count(Outcome.CLEAN)

    @property
    def aborted(self) -> int:
        return self._count(Outcome.ABORTED)

    @property
    def previewed(self) -> int:
        return sum(1 for o in self.outcomes if o.action == Action.PREVIEW)

    @property
    def suggestions_applied(self) -> int:
        return sum(o.applied for o in self.outcomes)

    @property
    def suggestions_dropped(self) -> int:
        return sum(len(o.dropped) for o in self.outcomes)

    @property
    def out_of_range_by_analyzer(self) -> Dict[str, int]:
        """Suggestions whose line index fell outside the file, per analyzer."""
        counts: Counter = Counter()
        for o in self.outcomes:
            for d in o.dropped:
                if d.reason == DropReason.OUT_OF_RANGE:
                    counts[d.suggestion.analyzer_name] += 1
        return dict(counts)

    def sorted_outcomes(self) -> List[FileOutcome]:
        return sorted(self.outcomes, key=lambda o: str(o.path))

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "processed": self.processed,
            "applied": self.applied,
            "skipped": self.skipped,
            "errored": self.errored,
            "clean": self.clean,
            "aborted": self.aborted,
            "previewed": self.previewed,
            "suggestions_applied": self.suggestions_applied,
            "suggestions_dropped": self.suggestions_dropped,
            "out_of_range_by_analyzer": self.out_of_range_by_analyzer,
            "elapsed": round(self.elapsed, 3),
            "files": [o.to_dict() for o in self.sorted_outcomes()],
        }
