"""Suggestion Protocol: the stdout contract between analyzers and Hookwise.

An analyzer prints one suggestion per line::

    SUGGESTION:category:startLine:description:originalText:replacementText[:severity]

Lines without the ``SUGGESTION:`` marker are ignored. Inside a field ``\\:``
stands for a literal colon, ``\\n`` for a newline, ``\\t`` for a tab and
``\\\\`` for a backslash. ``startLine`` is zero-based; ``N-M`` selects the
half-open range ``[N, M)`` instead of the single line ``[N, N+1)``.
"""

from __future__ import annotations

import time
from typing import List, Optional, Tuple

from .models import DEFAULT_SEVERITY, Category, LineRange, Severity, Suggestion

MARKER = "SUGGESTION"
DELIMITER = ":"

_UNESCAPE = {":": ":", "n": "\n", "t": "\t", "\\": "\\"}
_ESCAPE = {"\\": "\\\\", ":": "\\:", "\n": "\\n", "\t": "\\t"}


class ProtocolError(ValueError):
    """A marker line that does not follow the protocol."""


def _split_fields(text: str) -> List[str]:
    fields: List[str] = []
    current: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            current.append(_UNESCAPE.get(nxt, ch + nxt))
            i += 2
            continue
        if ch == DELIMITER:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current))
    return fields


def _parse_range(raw: str) -> LineRange:
    start_str, sep, end_str = raw.strip().partition("-")
    try:
        start = int(start_str)
        end = int(end_str) if sep else start + 1
        return LineRange(start, end)
    except ValueError:
        raise ProtocolError(f"invalid line reference: {raw!r}")


def parse_line(
    line: str,
    analyzer_name: str,
    ordinal: int = 0,
    generated_at: Optional[int] = None,
) -> Optional[Suggestion]:
    """Parse one stdout line.

    Returns None for lines without the marker; raises ProtocolError for
    marker lines that cannot be parsed.
    """
    line = line.rstrip("\r\n")
    if not line.startswith(MARKER + DELIMITER):
        return None

    fields = _split_fields(line)[1:]
    if len(fields) < 5:
        raise ProtocolError(f"expected at least 6 fields, got {len(fields) + 1}")

    severity_override: Optional[Severity] = None
    if len(fields) >= 6 and fields[-1] in Severity._value2member_map_:
        severity_override = Severity(fields[-1])
        fields = fields[:-1]

    category_raw, line_raw, description, original = fields[:4]
    # Unescaped colons in the last field belong to the replacement
    replacement = DELIMITER.join(fields[4:])

    try:
        category = Category(category_raw.strip())
    except ValueError:
        raise ProtocolError(f"unknown category: {category_raw!r}")
    line_range = _parse_range(line_raw)

    if generated_at is None:
        generated_at = time.time_ns()

    return Suggestion(
        id=f"{analyzer_name}-{line_range}-{generated_at}-{ordinal}",
        analyzer_name=analyzer_name,
        category=category,
        line_range=line_range,
        original_text=original,
        replacement_text=replacement,
        severity=severity_override or DEFAULT_SEVERITY[category],
        rationale=description,
    )


def parse_output(output: str, analyzer_name: str) -> Tuple[List[Suggestion], int]:
    """Parse analyzer stdout into suggestions.

    Returns (suggestions, malformed_count). Malformed marker lines are
    skipped individually.
    """
    generated_at = time.time_ns()
    suggestions: List[Suggestion] = []
    malformed = 0
    for line in output.splitlines():
        try:
            suggestion = parse_line(line, analyzer_name, len(suggestions), generated_at)
        except ProtocolError:
            malformed += 1
            continue
        if suggestion is not None:
            suggestions.append(suggestion)
    return suggestions, malformed


def escape(text: str) -> str:
    return "".join(_ESCAPE.get(ch, ch) for ch in text)


def format_suggestion(
    category: str,
    line_range,
    description: str,
    original: str,
    replacement: str,
    severity: Optional[str] = None,
) -> str:
    """Render a protocol line. ``line_range`` is an int or a LineRange."""
    if isinstance(line_range, LineRange):
        line_ref = str(line_range)
    else:
        line_ref = str(int(line_range))
    parts = [MARKER, category, line_ref, escape(description), escape(original), escape(replacement)]
    if severity:
        parts.append(severity)
    return DELIMITER.join(parts)
