"""Turn a file's suggestions into one rewritten buffer.

Suggestions are spliced in descending start-line order, so every splice
happens below all line numbers that are still to be processed and no
later suggestion needs its offsets adjusted. Ties on the start line are
broken by analyzer priority; the first suggestion in that order wins any
overlap.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from ..exceptions import StaleSuggestionError
from ..exceptions.patch import OUT_OF_RANGE
from ..logging_config import get_logger
from ..models import (
    DroppedSuggestion,
    DropReason,
    LineRange,
    Suggestion,
    check,
    is_applied,
)

logger = get_logger(__name__)

Priority = Callable[[str], int]


@dataclass
class TextBuffer:
    """Mutable line view of a file that keeps every line's own terminator.

    ``lines`` holds the text without terminators and ``endings`` the
    terminator of each line (``""`` for a final line without one). Spliced
    lines take the terminator of the line they replace, or of their
    neighbour, so untouched lines are rendered byte for byte.
    """

    lines: List[str]
    endings: List[str]
    newline: str = "\n"

    @classmethod
    def from_content(cls, content: str) -> TextBuffer:
        lines: List[str] = []
        endings: List[str] = []
        pieces = content.split("\n")
        tail = pieces.pop()
        for piece in pieces:
            if piece.endswith("\r"):
                lines.append(piece[:-1])
                endings.append("\r\n")
            else:
                lines.append(piece)
                endings.append("\n")
        if tail:
            if tail.endswith("\r"):
                lines.append(tail[:-1])
                endings.append("\r")
            else:
                lines.append(tail)
                endings.append("")
        # Dominant terminator, for lines that need one and have no neighbour
        newline = "\r\n" if endings.count("\r\n") > endings.count("\n") else "\n"
        return cls(lines=lines, endings=endings, newline=newline)

    def splice(self, span: LineRange, replacement: List[str]) -> None:
        replaced = self.endings[span.start:span.end]
        if replaced:
            ending, last = replaced[0] or self.newline, replaced[-1]
        elif span.start < len(self.endings):
            ending = last = self.endings[span.start] or self.newline
        elif self.endings and not self.endings[-1]:
            # Appending after a final line that had no terminator
            self.endings[-1] = ending = self.newline
            last = ""
        else:
            ending = last = self.endings[-1] if self.endings else self.newline

        new_endings = [ending] * len(replacement)
        if new_endings:
            new_endings[-1] = last

        self.lines[span.start:span.end] = replacement
        self.endings[span.start:span.end] = new_endings

        # Deleting the final lines keeps a missing trailing newline missing
        if not replacement and replaced and not replaced[-1] and self.endings and span.start == len(self.lines):
            self.endings[-1] = ""

    def render(self) -> str:
        return "".join(line + ending for line, ending in zip(self.lines, self.endings))


@dataclass
class ApplyResult:
    """Outcome of applying a batch of suggestions to one buffer."""

    original: str
    content: str
    applied: List[Suggestion] = field(default_factory=list)
    dropped: List[DroppedSuggestion] = field(default_factory=list)
    already_applied: List[Suggestion] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.content != self.original


def order_suggestions(
    suggestions: Iterable[Suggestion], priority: Optional[Priority] = None
) -> List[Suggestion]:
    """Descending start line; ties by analyzer priority, then input order."""
    rank = priority or (lambda _name: 0)
    indexed = list(enumerate(suggestions))
    indexed.sort(key=lambda item: (-item[1].line_range.start, rank(item[1].analyzer_name), item[0]))
    return [s for _, s in indexed]


def apply(
    file_path: Optional[Path],
    current_content: str,
    suggestions: Iterable[Suggestion],
    priority: Optional[Priority] = None,
) -> ApplyResult:
    """Apply ``suggestions`` to ``current_content`` in memory.

    Stale and overlapping suggestions are dropped and reported; they never
    abort the batch. Nothing is written to disk.
    """
    buffer = TextBuffer.from_content(current_content)
    result = ApplyResult(original=current_content, content=current_content)
    occupied: List[LineRange] = []

    for suggestion in order_suggestions(suggestions, priority):
        span = suggestion.line_range

        if any(span.overlaps(taken) for taken in occupied):
            logger.debug("Dropping %s: overlaps a higher-priority suggestion", suggestion.id)
            result.dropped.append(DroppedSuggestion(suggestion, DropReason.OVERLAP))
            continue

        if is_applied(suggestion, buffer.lines):
            occupied.append(span)
            result.already_applied.append(suggestion)
            continue

        try:
            check(suggestion, buffer.lines, file_path)
        except StaleSuggestionError as e:
            reason = DropReason.OUT_OF_RANGE if e.reason == OUT_OF_RANGE else DropReason.STALE
            logger.info("Dropping suggestion %s on %s: %s", suggestion.id, file_path, e.reason)
            result.dropped.append(DroppedSuggestion(suggestion, reason))
            continue

        buffer.splice(span, suggestion.replacement_lines())
        occupied.append(span)
        result.applied.append(suggestion)

    # Report in file order
    result.applied.reverse()
    result.content = buffer.render()
    return result
