"""Tests for protocol.py - Suggestion Protocol parsing and formatting."""

import pytest

from hookwise.models import Category, LineRange, Severity
from hookwise.protocol import (
    ProtocolError,
    escape,
    format_suggestion,
    parse_line,
    parse_output,
)


class TestParseLine:
    """Test parse_line function."""

    def test_basic_line(self):
        s = parse_line("SUGGESTION:quality:3:Use f-string:x = a + b:x = f'{a}{b}'", "lint", 0, 42)
        assert s.category == Category.QUALITY
        assert s.line_range == LineRange(3, 4)
        assert s.rationale == "Use f-string"
        assert s.original_text == "x = a + b"
        assert s.replacement_text == "x = f'{a}{b}'"
        assert s.severity == Severity.WARNING
        assert s.id == "lint-3-42-0"

    def test_non_marker_line_ignored(self):
        assert parse_line("checking file...", "lint") is None

    def test_escaped_colon(self):
        s = parse_line(r"SUGGESTION:formatting:0:Fix:a\:b:a \: b", "fmt")
        assert s.original_text == "a:b"
        assert s.replacement_text == "a : b"

    def test_escaped_newline_and_tab(self):
        s = parse_line(r"SUGGESTION:formatting:0:Split:a; b:a\n\tb", "fmt")
        assert s.replacement_text == "a\n\tb"

    def test_escaped_backslash(self):
        s = parse_line(r"SUGGESTION:formatting:0:Path:C\\dir:D\\dir", "fmt")
        assert s.original_text == "C\\dir"

    def test_unescaped_colons_join_replacement(self):
        s = parse_line("SUGGESTION:quality:0:Dict:{}:{'a': 1}", "lint")
        assert s.replacement_text == "{'a': 1}"

    def test_severity_override(self):
        s = parse_line("SUGGESTION:tone:0:Soften:bad:good:error", "tone")
        assert s.severity == Severity.ERROR
        assert s.replacement_text == "good"

    def test_default_severity_by_category(self):
        s = parse_line("SUGGESTION:security:0:Secret:key=1:key=env", "sec")
        assert s.severity == Severity.ERROR

    def test_range_extension(self):
        s = parse_line("SUGGESTION:documentation:2-5:Rewrite:a\\nb\\nc:d", "docs")
        assert s.line_range == LineRange(2, 5)

    def test_empty_replacement_kept(self):
        s = parse_line("SUGGESTION:quality:1:Remove debug:print(x):", "lint")
        assert s.replacement_text == ""

    def test_too_few_fields(self):
        with pytest.raises(ProtocolError):
            parse_line("SUGGESTION:quality:1:only", "lint")

    def test_unknown_category(self):
        with pytest.raises(ProtocolError):
            parse_line("SUGGESTION:style:1:d:a:b", "lint")

    def test_bad_line_number(self):
        with pytest.raises(ProtocolError):
            parse_line("SUGGESTION:quality:one:d:a:b", "lint")

    def test_negative_line_number(self):
        with pytest.raises(ProtocolError):
            parse_line("SUGGESTION:quality:-1:d:a:b", "lint")


class TestParseOutput:
    """Test parse_output function."""

    def test_mixed_output(self):
        output = "\n".join(
            [
                "Analyzing app.py",
                "SUGGESTION:quality:0:First:a:b",
                "SUGGESTION:broken",
                "SUGGESTION:header:0-0:Add header::# app",
            ]
        )
        suggestions, malformed = parse_output(output, "lint")
        assert len(suggestions) == 2
        assert malformed == 1
        assert suggestions[1].line_range == LineRange(0, 0)

    def test_ids_unique_within_batch(self):
        output = "SUGGESTION:quality:0:d:a:b\nSUGGESTION:quality:0:d:a:c\n"
        suggestions, _ = parse_output(output, "lint")
        assert suggestions[0].id != suggestions[1].id

    def test_empty_output(self):
        assert parse_output("", "lint") == ([], 0)


class TestFormat:
    """Test escaping and formatting."""

    def test_escape(self):
        assert escape("a:b\nc\\") == "a\\:b\\nc\\\\"

    def test_format_then_parse(self):
        line = format_suggestion("quality", 4, "Use: colon", "x:1\n", "x: 1\n", "info")
        s = parse_line(line, "lint")
        assert s.rationale == "Use: colon"
        assert s.original_text == "x:1\n"
        assert s.replacement_text == "x: 1\n"
        assert s.severity == Severity.INFO

    def test_format_range(self):
        line = format_suggestion("quality", LineRange(1, 3), "d", "a", "b")
        assert line == "SUGGESTION:quality:1-3:d:a:b"
