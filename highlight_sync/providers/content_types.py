"""Provider-agnostic content types for bookmarks and highlights."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class BookmarkKind(str, Enum):
    """Kind of source document a bookmark points at."""

    ARTICLE = "article"
    EMAIL = "email"
    BOOK = "book"


class SaveType(str, Enum):
    """How a bookmark is captured in the document store."""

    MARKDOWN = "markdown"
    BOOKMARK = "bookmark"
    ARCHIVE = "archive"
    PDF = "pdf"

    @classmethod
    def parse(cls, value: str | None) -> SaveType:
        """Loosely parse a user supplied type name.

        Anything starting with "b" or ending in "loc" is a bookmark, "a..." an
        archive, "p..." a PDF. Everything else falls back to Markdown.
        """
        v = (value or "").strip().lower()
        if re.search(r"(^b|loc$)", v):
            return cls.BOOKMARK
        if v.startswith("a"):
            return cls.ARCHIVE
        if v.startswith("p"):
            return cls.PDF
        return cls.MARKDOWN


@dataclass(frozen=True)
class Highlight:
    """A captured quote belonging to a bookmark."""

    text: str
    note: str | None = None
    tags: tuple[str, ...] = ()
    location: int | None = None
    source_link: str | None = None


@dataclass(frozen=True)
class Bookmark:
    """One source document and its highlights."""

    url: str
    title: str
    kind: BookmarkKind = BookmarkKind.ARTICLE
    author: str | None = None
    cover_image: str | None = None
    doc_note: str | None = None
    summary: str | None = None
    tags: tuple[str, ...] = ()
    highlights: tuple[Highlight, ...] = ()

    def highlights_in_order(self) -> list[Highlight]:
        """Highlights sorted by location; unlocated ones keep their order at the end."""
        return sort_highlights(self.highlights)

    def record_type(self, save_type: SaveType) -> SaveType:
        """Only articles can be captured; emails and books are saved as bookmarks."""
        if self.kind is not BookmarkKind.ARTICLE:
            return SaveType.BOOKMARK
        return save_type

    def can_highlight(self, save_type: SaveType) -> bool:
        return self.record_type(save_type) is SaveType.MARKDOWN


def sort_highlights(highlights: tuple[Highlight, ...] | list[Highlight]) -> list[Highlight]:
    return sorted(
        highlights,
        key=lambda h: (h.location is None, h.location if h.location is not None else 0),
    )
