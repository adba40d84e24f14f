"""Tolerant match patterns for captured highlight text.

A rendered document rarely reproduces a captured quote byte for byte: the HTML
to Markdown conversion moves whitespace around, inserts link syntax and swaps
typographic punctuation. Patterns therefore only keep the alphanumeric skeleton
of the highlight, in order, and let anything else sit between the words.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from highlight_sync.core.text import normalize_text

# Parenthesized link targets are replaced before the skeleton is taken, so URL
# fragments never become required words.
LINK_TARGET_RE = re.compile(r"\(\s*(?:[a-z][a-z0-9+.-]*://|mailto:|www\.)[^()\s]*\s*\)", re.IGNORECASE)
LINK_PLACEHOLDER = " "

NON_ALNUM_RE = re.compile(r"[\W_]+")

WILDCARD = ".*?"

# Trailing sentence punctuation / closing quotes, then an optional footnote-style
# citation such as "[12]" or "(Smith 2004)". Absorbed when present, never required.
# A bracket followed by "(" or "[" is the label of a link, not a citation.
TRAILER = (
    r"(?:[.,;:!?…'\"’”]*"
    r"(?:\s?(?:\[[^\[\]\n]{1,40}\](?![(\[])|\([^()\n]{1,40}\)))?)"
)


@dataclass(frozen=True)
class HighlightPattern:
    """Compiled matcher for one highlight, reusable across lines."""

    highlight_text: str
    words: tuple[str, ...]
    regex: re.Pattern[str]

    @property
    def pattern(self) -> str:
        return self.regex.pattern

    def search(self, line: str) -> re.Match[str] | None:
        return self.regex.search(line)

    def matches(self, line: str) -> bool:
        return self.regex.search(line) is not None


def skeleton(text: str) -> list[str]:
    """Alphanumeric runs of normalized text, with link targets neutralized."""
    normalized = LINK_TARGET_RE.sub(LINK_PLACEHOLDER, normalize_text(text))
    return [word for word in NON_ALNUM_RE.split(normalized) if word]


def compile_skeleton(words: list[str] | tuple[str, ...]) -> str:
    """Join words with lazy wildcards.

    Every wildcard and the word after it form an atomic group: once the leftmost
    occurrence of a word is found it is kept. Leftmost is always the best choice
    for an in-order subsequence, and committing to it keeps a failed search from
    backtracking through every combination of earlier words.
    """
    first, *rest = words
    parts = [re.escape(first)]
    parts.extend(f"(?>{WILDCARD}{re.escape(word)})" for word in rest)
    return "".join(parts) + TRAILER


def build_pattern(text: str | None) -> HighlightPattern | None:
    """Build a case-insensitive fuzzy pattern for a highlight.

    Returns None when the text has no alphanumeric content (empty, whitespace
    or punctuation only); such highlights never match anything.
    """
    if not text:
        return None
    words = skeleton(text)
    if not words:
        return None
    regex = re.compile(compile_skeleton(words), re.IGNORECASE)
    return HighlightPattern(highlight_text=text, words=tuple(words), regex=regex)
