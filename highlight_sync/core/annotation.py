"""Markdown rendering of the annotation block attached to each record."""

from __future__ import annotations

from highlight_sync.core.text import block_quote, is_whitespace_only, italicize, to_hashtags
from highlight_sync.providers.content_types import Bookmark, Highlight

HIGHLIGHTS_HEADING = "### Highlights"


def highlight_to_markdown(highlight: Highlight) -> str:
    """Quote text, then note, tags and a link back to Readwise."""
    out = [highlight.text]
    if not is_whitespace_only(highlight.note):
        out.append(block_quote(highlight.note))
    if highlight.tags:
        out.append(f"Tags: {to_hashtags(highlight.tags)}")
    if highlight.source_link:
        out.append(f"- [Highlight link]({highlight.source_link})")
    return "\n\n".join(out) + "\n\n"


def format_summary(summary: str | None) -> str:
    return "" if is_whitespace_only(summary) else f"**Summary**: {summary}"


def format_doc_note(note: str | None) -> str:
    return "" if is_whitespace_only(note) else f"**Note:** {italicize(note)}"


def render_annotation(bookmark: Bookmark) -> str:
    """Annotation block for a bookmark: summary, document note, highlights.

    Empty parts are left out. The highlights section lists highlights in
    location order.
    """
    parts = [format_summary(bookmark.summary), format_doc_note(bookmark.doc_note)]
    if bookmark.highlights:
        items = "\n\n".join(highlight_to_markdown(h) for h in bookmark.highlights_in_order())
        parts.append(f"{HIGHLIGHTS_HEADING}\n\n{items}")
    return "\n\n".join(p for p in parts if p).strip()
