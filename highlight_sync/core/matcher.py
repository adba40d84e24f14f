"""Line-by-line matching of a document body against highlight patterns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from highlight_sync.core.patterns import HighlightPattern
from highlight_sync.core.text import is_whitespace_only, normalize_text, strip_markers


@dataclass
class MatchResult:
    """Per-line match decisions.

    ``matches[i]`` is the index of the winning pattern for line ``i`` or None.
    ``unmatched`` lists pattern indices that matched no line (patterns that are
    None included).
    """

    matches: list[int | None] = field(default_factory=list)
    unmatched: list[int] = field(default_factory=list)

    @property
    def matched_line_count(self) -> int:
        return sum(1 for m in self.matches if m is not None)


def normalize_line(line: str) -> str:
    """Normalize a body line for matching; existing markers are ignored."""
    return normalize_text(strip_markers(line))


def match_line(line: str, patterns: Sequence[HighlightPattern | None]) -> int | None:
    """Index of the first pattern matching ``line``, or None.

    Patterns are tried in the order given, so with capture-ordered patterns the
    earliest highlight wins when several could match.
    """
    if is_whitespace_only(line):
        return None
    normalized = normalize_line(line)
    if is_whitespace_only(normalized):
        return None
    for i, pattern in enumerate(patterns):
        if pattern is not None and pattern.matches(normalized):
            return i
    return None


def match_lines(
    lines: Sequence[str],
    patterns: Sequence[HighlightPattern | None],
) -> MatchResult:
    """Match every line independently; no state is carried between lines.

    A quote the renderer split over several physical lines is therefore only
    found if one of those lines holds the whole skeleton.
    """
    result = MatchResult()
    hit: set[int] = set()
    for line in lines:
        m = match_line(line, patterns)
        result.matches.append(m)
        if m is not None:
            hit.add(m)
    result.unmatched = [i for i in range(len(patterns)) if i not in hit]
    return result
