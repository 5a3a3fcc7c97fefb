"""Tests for patching/engine.py - ordering, overlap, staleness, idempotence."""

import itertools

from hookwise.models import DropReason, LineRange
from hookwise.patching import TextBuffer, apply, order_suggestions

CONTENT = "line0\nline1\nline2\nline3\nline4\n"


class TestTextBuffer:
    """Test TextBuffer newline handling."""

    def test_round_trip_lf(self):
        assert TextBuffer.from_content(CONTENT).render() == CONTENT

    def test_round_trip_crlf(self):
        content = "a\r\nb\r\n"
        assert TextBuffer.from_content(content).render() == content

    def test_missing_trailing_newline_preserved(self):
        assert TextBuffer.from_content("a\nb").render() == "a\nb"

    def test_all_lines_deleted(self):
        buffer = TextBuffer.from_content("a\n")
        buffer.splice(LineRange(0, 1), [])
        assert buffer.render() == ""

    def test_mixed_endings_round_trip(self):
        content = "a\nb\r\nc\n"
        assert TextBuffer.from_content(content).render() == content

    def test_dominant_newline(self):
        assert TextBuffer.from_content("a\r\nb\r\nc\n").newline == "\r\n"
        assert TextBuffer.from_content("a\nb\nc\r\n").newline == "\n"

    def test_spliced_lines_take_replaced_terminator(self):
        buffer = TextBuffer.from_content("a\nb\r\nc\n")
        buffer.splice(LineRange(1, 2), ["x", "y"])
        assert buffer.render() == "a\nx\r\ny\r\nc\n"

    def test_insert_takes_neighbour_terminator(self):
        buffer = TextBuffer.from_content("a\nb\r\n")
        buffer.splice(LineRange(1, 1), ["new"])
        assert buffer.render() == "a\nnew\r\nb\r\n"

    def test_append_after_unterminated_last_line(self):
        buffer = TextBuffer.from_content("a\r\nb")
        buffer.splice(LineRange(2, 2), ["c"])
        assert buffer.render() == "a\r\nb\r\nc"

    def test_delete_last_line_keeps_missing_newline(self):
        buffer = TextBuffer.from_content("a\nb")
        buffer.splice(LineRange(1, 2), [])
        assert buffer.render() == "a"


class TestOrdering:
    """Test order_suggestions."""

    def test_descending_start_line(self, make_suggestion):
        low = make_suggestion(0, "line0", "L0")
        high = make_suggestion(3, "line3", "L3")
        assert order_suggestions([low, high]) == [high, low]

    def test_ties_by_priority_then_input(self, make_suggestion):
        a = make_suggestion(1, "line1", "A", analyzer="docs")
        b = make_suggestion(1, "line1", "B", analyzer="security")
        c = make_suggestion(1, "line1", "C", analyzer="security")
        rank = {"security": 0, "docs": 1}.get
        assert order_suggestions([a, b, c], rank) == [b, c, a]


class TestApply:
    """Test apply function."""

    def test_single_replacement(self, make_suggestion):
        result = apply(None, CONTENT, [make_suggestion(1, "line1", "LINE1")])
        assert result.content == "line0\nLINE1\nline2\nline3\nline4\n"
        assert result.changed
        assert len(result.applied) == 1

    def test_multi_line_replacement_shifts_nothing_above(self, make_suggestion):
        expand = make_suggestion(1, "line1", "a\nb\nc")
        later = make_suggestion(3, "line3", "THREE")
        result = apply(None, CONTENT, [expand, later])
        assert result.content == "line0\na\nb\nc\nline2\nTHREE\nline4\n"

    def test_range_replacement(self, make_suggestion):
        s = make_suggestion(1, "line1\nline2", "merged", end=3)
        assert apply(None, CONTENT, [s]).content == "line0\nmerged\nline3\nline4\n"

    def test_empty_replacement_deletes(self, make_suggestion):
        s = make_suggestion(2, "line2", "")
        assert apply(None, CONTENT, [s]).content == "line0\nline1\nline3\nline4\n"

    def test_insertion(self, make_suggestion):
        s = make_suggestion(0, "", "# header", end=0)
        assert apply(None, CONTENT, [s]).content == "# header\n" + CONTENT

    def test_crlf_preserved(self, make_suggestion):
        content = "a\r\nb\r\n"
        result = apply(None, content, [make_suggestion(1, "b", "B")])
        assert result.content == "a\r\nB\r\n"

    def test_mixed_endings_untouched_lines_kept(self, make_suggestion):
        result = apply(None, "a\nb\nc\r\nd\n", [make_suggestion(0, "a", "A")])
        assert result.content == "A\nb\nc\r\nd\n"

    def test_multi_line_replacement_in_crlf_region(self, make_suggestion):
        content = "a\nb\r\nc\r\nd\n"
        s = make_suggestion(1, "b\nc", "x\ny\nz", end=3)
        assert apply(None, content, [s]).content == "a\nx\r\ny\r\nz\r\nd\n"

    def test_collapse_to_prefix_applied(self, make_suggestion):
        content = "import os\nimport os\nx = 1\n"
        s = make_suggestion(0, "import os\nimport os", "import os", end=2)
        result = apply(None, content, [s])
        assert result.content == "import os\nx = 1\n"
        assert result.applied == [s]
        assert result.already_applied == []

        again = apply(None, result.content, [s])
        assert again.already_applied == [s]
        assert not again.changed

    def test_expansion_from_prefix_applied_once(self, make_suggestion):
        s = make_suggestion(0, "line0", "line0\nextra")
        once = apply(None, CONTENT, [s])
        assert once.content == "line0\nextra\nline1\nline2\nline3\nline4\n"
        again = apply(None, once.content, [s])
        assert again.already_applied == [s]
        assert again.content == once.content

    def test_stale_dropped_others_applied(self, make_suggestion):
        stale = make_suggestion(0, "changed", "x")
        good = make_suggestion(2, "line2", "LINE2")
        result = apply(None, CONTENT, [stale, good])
        assert result.applied == [good]
        assert [(d.suggestion, d.reason) for d in result.dropped] == [(stale, DropReason.STALE)]
        assert "LINE2" in result.content

    def test_out_of_range_dropped(self, make_suggestion):
        s = make_suggestion(50, "line50", "x")
        result = apply(None, CONTENT, [s])
        assert result.dropped[0].reason == DropReason.OUT_OF_RANGE
        assert not result.changed

    def test_overlap_first_by_priority_wins(self, make_suggestion):
        docs = make_suggestion(1, "line1", "docs", analyzer="docs")
        security = make_suggestion(1, "line1\nline2", "security", end=3, analyzer="security")
        rank = {"security": 0, "docs": 1}.get
        result = apply(None, CONTENT, [docs, security], rank)
        assert result.applied == [security]
        assert result.dropped[0].suggestion == docs
        assert result.dropped[0].reason == DropReason.OVERLAP

    def test_overlap_from_above(self, make_suggestion):
        wide = make_suggestion(0, "line0\nline1\nline2", "wide", end=3)
        inner = make_suggestion(2, "line2", "inner")
        result = apply(None, CONTENT, [wide, inner])
        # Higher start line is processed first and wins
        assert result.applied == [inner]
        assert result.dropped[0].suggestion == wide

    def test_nothing_written(self, make_suggestion, tmp_path):
        path = tmp_path / "f.txt"
        path.write_text(CONTENT)
        apply(path, CONTENT, [make_suggestion(0, "line0", "x")])
        assert path.read_text() == CONTENT

    def test_idempotent(self, make_suggestion):
        batch = [
            make_suggestion(0, "line0", "# header\nline0"),
            make_suggestion(2, "line2", "LINE2"),
            make_suggestion(4, "line4", ""),
        ]
        once = apply(None, CONTENT, batch)
        twice = apply(None, once.content, batch)
        assert twice.content == once.content
        assert not twice.changed

    def test_already_applied_reported(self, make_suggestion):
        s = make_suggestion(1, "line1", "LINE1")
        once = apply(None, CONTENT, [s])
        again = apply(None, once.content, [s])
        assert again.already_applied == [s]
        assert again.dropped == []

    def test_order_invariant_for_disjoint_batch(self, make_suggestion):
        batch = [
            make_suggestion(0, "line0", "zero"),
            make_suggestion(1, "line1", "one\nuno"),
            make_suggestion(3, "line3", ""),
            make_suggestion(4, "line4", "four"),
        ]
        results = {apply(None, CONTENT, list(p)).content for p in itertools.permutations(batch)}
        assert results == {"zero\none\nuno\nline2\nfour\n"}
