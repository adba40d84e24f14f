"""Mark highlighted passages in a Markdown body with CriticMarkup."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Sequence

from highlight_sync.core.matcher import match_lines
from highlight_sync.core.patterns import HighlightPattern, build_pattern
from highlight_sync.core.text import MARK_CLOSE, MARK_OPEN, MARKER_RE, scrub
from highlight_sync.providers.content_types import Highlight, sort_highlights

logger = logging.getLogger(__name__)

# Leading block syntax kept outside the marker: headings, quotes, list bullets
BLOCK_PREFIX_RE = re.compile(r"^\s*(?:(?:#+|>|[-*+]|\d+[.)])\s+)*")

EMPHASIS_RUN_RE = re.compile(r"\*+")
CODE_RUN_RE = re.compile(r"`+")


@dataclass
class HighlightResult:
    """Outcome of highlighting one document body."""

    body: str
    matched_lines: int = 0
    unmatched: list[Highlight] = field(default_factory=list)
    changed: bool = False


def _split_markers(line: str) -> tuple[str, list[tuple[int, int]]]:
    """Remove markers from a line and return the regions they enclosed.

    Region offsets refer to the cleaned line. An opening marker without a
    closing one is dropped.
    """
    parts: list[str] = []
    regions: list[tuple[int, int]] = []
    pos = 0
    clean_len = 0
    open_at: int | None = None
    for m in MARKER_RE.finditer(line):
        chunk = line[pos : m.start()]
        parts.append(chunk)
        clean_len += len(chunk)
        pos = m.end()
        if m.group() == MARK_OPEN:
            if open_at is None:
                open_at = clean_len
        elif open_at is not None:
            regions.append((open_at, clean_len))
            open_at = None
    parts.append(line[pos:])
    return "".join(parts), regions


def _content_span(line: str) -> tuple[int, int]:
    prefix = BLOCK_PREFIX_RE.match(line)
    start = prefix.end() if prefix else 0
    return start, max(start, len(line.rstrip()))


def _widen_to_words(line: str, start: int, end: int) -> tuple[int, int]:
    while start > 0 and line[start - 1].isalnum():
        start -= 1
    if line[end - 1].isalnum():
        while end < len(line) and line[end].isalnum():
            end += 1
    return start, end


def _balanced(fragment: str) -> bool:
    """False if wrapping ``fragment`` alone would cut through inline markup."""
    return (
        len(EMPHASIS_RUN_RE.findall(fragment)) % 2 == 0
        and len(CODE_RUN_RE.findall(fragment)) % 2 == 0
        and fragment.count("[") == fragment.count("]")
        and fragment.count("(") == fragment.count(")")
    )


def _splits_link(line: str, end: int) -> bool:
    """True if a span ending at ``end`` would separate link syntax from its target."""
    return line[end - 1 : end + 1] in ("](", "][", "![")


def wrap_line(line: str, pattern: HighlightPattern | None) -> str:
    """Wrap the part of ``line`` matched by ``pattern`` in ``{==...==}``.

    Existing markers are removed first and the regions they covered are merged
    into the new span, so the result always carries exactly one marker pair and
    running it again gives the same line. When the pattern cannot be located on
    the raw line the whole line content (after any block prefix) is wrapped.
    """
    clean, regions = _split_markers(line)
    span: tuple[int, int] | None = None

    if pattern is not None:
        m = pattern.search(clean)
        if m and m.end() > m.start():
            span = _widen_to_words(clean, m.start(), m.end())
            if not _balanced(clean[span[0] : span[1]]) or _splits_link(clean, span[1]):
                span = None

    if span is None:
        span = _content_span(clean)

    start, end = span
    for r_start, r_end in regions:
        start = min(start, r_start)
        end = max(end, r_end)

    if start >= end:
        return clean
    return f"{clean[:start]}{MARK_OPEN}{clean[start:end]}{MARK_CLOSE}{clean[end:]}"


def highlight_markdown(
    body: str,
    highlights: Sequence[Highlight],
    *,
    verbose: bool = False,
) -> HighlightResult:
    """Mark every body line that matches one of ``highlights``.

    Highlights are tried in location order and the first match wins a line.
    ``verbose`` raises per-line and unmatched diagnostics from DEBUG to INFO.
    """
    level = logging.INFO if verbose else logging.DEBUG
    ordered = sort_highlights(list(highlights))
    patterns = [build_pattern(h.text) for h in ordered]

    lines = scrub(body).split("\n")
    result = match_lines(lines, patterns)

    out: list[str] = []
    for lineno, (line, idx) in enumerate(zip(lines, result.matches), start=1):
        if idx is None:
            out.append(line)
            continue
        out.append(wrap_line(line, patterns[idx]))
        logger.log(level, f"Line {lineno} matches highlight #{idx + 1}: {ordered[idx].text[:50]!r}")

    unmatched = [ordered[i] for i in result.unmatched]
    for i in result.unmatched:
        if patterns[i] is None:
            logger.log(level, f"Highlight #{i + 1} has no matchable text, skipped")
        else:
            logger.log(level, f"Highlight #{i + 1} not found in body: {ordered[i].text[:50]!r}")

    new_body = "\n".join(out)
    return HighlightResult(
        body=new_body,
        matched_lines=result.matched_line_count,
        unmatched=unmatched,
        changed=new_body != body,
    )
