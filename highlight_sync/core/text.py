"""Text normalization helpers shared by matching and annotation rendering.

All functions here are pure and never raise on odd input: undecodable bytes and
lone surrogates are replaced with U+FFFD, unknown escapes are left as they are.
"""

from __future__ import annotations

import re
import unicodedata

REPLACEMENT_CHAR = "\ufffd"

# CriticMarkup highlight delimiters
MARK_OPEN = "{=="
MARK_CLOSE = "==}"
MARKER_RE = re.compile(r"\{==|==\}")

# Literal \u2014 style escapes and HTML numeric entities
ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})|&#(\d{1,7});|&#[xX]([0-9a-fA-F]{1,6});")

SURROGATE_RE = re.compile("[\ud800-\udfff]")

LINK_RE = re.compile(r"!?\[(.*?)\]([(\[].*?[\])])")
STRONG_RE = re.compile(r"(\*+)(.*?)\1")
EMPHASIS_RE = re.compile(r"(_+)(.*?)\1")
HEADING_RE = re.compile(r"^#+ *", re.MULTILINE)
BLOCKQUOTE_RE = re.compile(r"^(> *)+", re.MULTILINE)

_ASCII_PUNCTUATION = str.maketrans({
    "\u2010": "-",
    "\u2011": "-",
    "\u2012": "-",
    "\u2013": "-",
    "\u2014": "-",
    "\u2015": "---",
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2026": "...",
    "\u00a0": " ",
    "\u00a9": "(c)",
    "\u00ae": "(r)",
    "\u2122": "(tm)",
})


def scrub(text: str | bytes | None) -> str:
    """Return a clean str, substituting U+FFFD for anything unrepresentable."""
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return SURROGATE_RE.sub(REPLACEMENT_CHAR, text)


def _decode_escape(match: re.Match[str]) -> str:
    hex4, dec, hexn = match.groups()
    if hex4 is not None:
        code = int(hex4, 16)
    elif dec is not None:
        code = int(dec)
    else:
        code = int(hexn, 16)
    if code < 32 or code == 127 or 0xD800 <= code <= 0xDFFF or code > 0x10FFFF:
        return match.group(0)
    return chr(code)


def decode_escapes(text: str) -> str:
    """Turn literal ``\\u2014`` escapes and ``&#8212;`` entities into characters."""
    return ESCAPE_RE.sub(_decode_escape, text)


def strip_markdown(text: str) -> str:
    """Strip Markdown decoration, keeping the visible text.

    Links and images are reduced to their label, paired ``*``/``_`` emphasis is
    unwrapped and leading heading and blockquote markers are removed.
    """
    text = LINK_RE.sub(r"\1", text)
    text = STRONG_RE.sub(r"\2", text)
    text = EMPHASIS_RE.sub(r"\2", text)
    text = HEADING_RE.sub("", text)
    return BLOCKQUOTE_RE.sub("", text)


def strip_markers(text: str) -> str:
    """Remove CriticMarkup highlight delimiters."""
    return MARKER_RE.sub("", text)


def normalize_text(text: str | bytes | None) -> str:
    """Canonical form used for highlight/document comparison."""
    text = unicodedata.normalize("NFKC", decode_escapes(scrub(text)))
    return strip_markdown(text)


def to_ascii(text: str | bytes | None) -> str:
    """ASCII-only version of a string, used for record titles.

    Typographic punctuation becomes its ASCII equivalent, accents are dropped
    and anything else outside ASCII (and all control characters) is removed.

    >>> to_ascii("Caf\\u00e9 \\u2014 \\u201cnotes\\u201d")
    'Cafe - "notes"'
    """
    text = scrub(text).translate(_ASCII_PUNCTUATION)
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", errors="ignore").decode("ascii")
    return "".join(c for c in text if 32 <= ord(c) != 127)


def is_whitespace_only(text: str | None) -> bool:
    return not text or not text.strip()


def block_quote(text: str) -> str:
    """Prefix every line with a Markdown blockquote marker."""
    return "\n".join(f"> {line}" for line in text.split("\n"))


def italicize(text: str) -> str:
    """Italicize line by line, leaving blank lines empty."""
    return "\n".join(
        "" if is_whitespace_only(line) else f"_{line.strip()}_" for line in text.split("\n")
    )


def to_hashtags(tags: tuple[str, ...] | list[str]) -> str:
    return " ".join(f"#{tag}" for tag in tags)
