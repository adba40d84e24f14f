"""Tests for core/highlighter.py"""

import logging

from highlight_sync.core.highlighter import highlight_markdown, wrap_line
from highlight_sync.core.patterns import build_pattern
from highlight_sync.providers.content_types import Highlight

BODY = """# A Title

Intro paragraph.

The quick brown fox jumps over the lazy dog.

> It’s a quoted line, with a [link](https://example.com/a).

Outro."""


class TestWrapLine:
    """Tests for wrapping a single line."""

    def test_wraps_matched_span(self):
        line = wrap_line("The quick brown fox jumps", build_pattern("quick brown fox"))
        assert line == "The {==quick brown fox==} jumps"

    def test_trailing_punctuation_inside_marker(self):
        line = wrap_line("Well, it's a test, right?", build_pattern("It’s—a test."))
        assert line == "Well, {==it's a test,==} right?"

    def test_trailing_citation_inside_marker(self):
        line = wrap_line("We found a test.[12] Then more.", build_pattern("a test"))
        assert line == "We found {==a test.[12]==} Then more."

    def test_span_widened_to_whole_words(self):
        line = wrap_line("The quick brown fox", build_pattern("uick brow"))
        assert line == "The {==quick brown==} fox"

    def test_idempotent(self):
        pattern = build_pattern("quick brown fox")
        once = wrap_line("The quick brown fox jumps", pattern)
        assert wrap_line(once, pattern) == once

    def test_no_nested_markers(self):
        pattern = build_pattern("quick brown")
        line = wrap_line("{==The quick brown fox==}", pattern)
        assert line == "{==The quick brown fox==}"
        assert line.count("{==") == 1
        assert line.count("==}") == 1

    def test_previous_region_kept_in_single_marker(self):
        line = wrap_line("{==The quick==} brown fox jumps", build_pattern("fox jumps"))
        assert line == "{==The quick brown fox jumps==}"

    def test_fallback_without_pattern_keeps_block_prefix(self):
        assert wrap_line("## Heading text", None) == "## {==Heading text==}"
        assert wrap_line("> quoted", None) == "> {==quoted==}"
        assert wrap_line("- item", None) == "- {==item==}"

    def test_fallback_when_raw_line_does_not_resolve(self):
        # Matches after emphasis stripping only
        line = wrap_line("snake_case_name here", build_pattern("snake_case_name"))
        assert line == "{==snake_case_name here==}"

    def test_fallback_when_span_cuts_through_emphasis(self):
        line = wrap_line("Some **bold claim** made here.", build_pattern("claim made"))
        assert line == "{==Some **bold claim** made here.==}"

    def test_link_after_match_left_intact(self):
        line = "Read the quick brown fox [docs](http://example.com/x) today."
        wrapped = wrap_line(line, build_pattern("Read the quick brown fox"))
        assert wrapped == "{==Read the quick brown fox==} [docs](http://example.com/x) today."

    def test_reference_link_after_match_left_intact(self):
        wrapped = wrap_line("See the quick fox [docs][1] now.", build_pattern("the quick fox"))
        assert wrapped == "See {==the quick fox==} [docs][1] now."

    def test_image_after_match_left_intact(self):
        wrapped = wrap_line("A brown fox![a fox](fox.png) here", build_pattern("brown fox"))
        assert "![a fox](fox.png)" in wrapped
        assert wrapped == "{==A brown fox![a fox](fox.png) here==}"

    def test_link_line_rewrap_is_stable(self):
        pattern = build_pattern("Read the quick brown fox")
        once = wrap_line("Read the quick brown fox [docs](http://example.com/x) today.", pattern)
        assert wrap_line(once, pattern) == once

    def test_fallback_is_idempotent(self):
        once = wrap_line("## Heading text", None)
        assert wrap_line(once, None) == once


class TestHighlightMarkdown:
    """Tests for highlighting a whole body."""

    def test_marks_matching_lines(self):
        result = highlight_markdown(BODY, [Highlight(text="quick brown fox", location=1)])

        assert "The {==quick brown fox==} jumps over the lazy dog." in result.body
        assert result.matched_lines == 1
        assert result.unmatched == []
        assert result.changed is True

    def test_other_lines_untouched(self):
        result = highlight_markdown(BODY, [Highlight(text="quick brown fox", location=1)])
        original = BODY.split("\n")
        updated = result.body.split("\n")
        assert len(original) == len(updated)
        changed = [i for i, (a, b) in enumerate(zip(original, updated)) if a != b]
        assert changed == [4]

    def test_quote_with_link(self):
        result = highlight_markdown(BODY, [Highlight(text="It's a quoted line, with a link.", location=1)])
        assert "> {==It’s a quoted line, with a [link](https://example.com/a).==}" in result.body

    def test_second_run_changes_nothing(self):
        highlights = [Highlight(text="quick brown fox", location=1), Highlight(text="Intro paragraph", location=0)]
        first = highlight_markdown(BODY, highlights)
        second = highlight_markdown(first.body, highlights)
        assert second.body == first.body
        assert second.changed is False

    def test_location_order_decides(self):
        highlights = [
            Highlight(text="quick brown fox jumps", location=5),
            Highlight(text="lazy dog", location=2),
        ]
        result = highlight_markdown(BODY, highlights)
        assert "The quick brown fox jumps over the {==lazy dog.==}" in result.body
        assert [h.location for h in result.unmatched] == [5]

    def test_unmatched_and_empty_highlights_reported(self):
        highlights = [Highlight(text="not in the document", location=1), Highlight(text="  ", location=2)]
        result = highlight_markdown(BODY, highlights)
        assert result.body == BODY
        assert result.changed is False
        assert len(result.unmatched) == 2

    def test_verbose_logs_at_info(self, caplog):
        caplog.set_level(logging.INFO, logger="highlight_sync.core.highlighter")
        highlight_markdown(BODY, [Highlight(text="not in the document")], verbose=True)
        assert "not found in body" in caplog.text

    def test_quiet_by_default(self, caplog):
        caplog.set_level(logging.INFO, logger="highlight_sync.core.highlighter")
        highlight_markdown(BODY, [Highlight(text="not in the document")])
        assert "not found in body" not in caplog.text
