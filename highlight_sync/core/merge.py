"""Line-level merge of annotation text."""

from __future__ import annotations

from highlight_sync.core.text import is_whitespace_only

PARAGRAPH_SEPARATOR = "\n\n"


def content_lines(text: str | None) -> list[str]:
    """Non-blank lines of ``text``, in order."""
    if not text:
        return []
    return [line for line in text.split("\n") if not is_whitespace_only(line)]


def merge_annotations(new: str | None, existing: str | None) -> str:
    """Merge a freshly generated annotation with the stored one.

    All non-blank lines of ``new`` come first, in order. Lines of ``existing``
    follow unless an identical line was already kept. Nothing else is removed,
    and lines are joined as paragraphs.

    >>> merge_annotations("line one\\n\\nline two", "line two\\n\\nline three")
    'line one\\n\\nline two\\n\\nline three'
    """
    merged = content_lines(new)
    seen = set(merged)
    for line in content_lines(existing):
        if line not in seen:
            merged.append(line)
            seen.add(line)
    return PARAGRAPH_SEPARATOR.join(merged)
