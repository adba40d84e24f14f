"""Interface of the stores that hold records, their bodies and annotations."""

from __future__ import annotations

from abc import ABC, abstractmethod

from highlight_sync.providers.content_types import Bookmark, SaveType


class DocumentStoreError(Exception):
    """A lookup or update against the document store failed."""


class DocumentStore(ABC):
    """Abstract base class for document stores.

    Records are addressed by title. Lookups return None when the record (or
    its annotation) does not exist. Every failure to talk to the store raises
    DocumentStoreError.
    """

    @abstractmethod
    def save_bookmark(self, bookmark: Bookmark, annotation: str, save_type: SaveType) -> None:
        """Create the record if missing, then set URL, comment, annotation and tags."""
        ...

    @abstractmethod
    def get_annotation(self, title: str) -> str | None:
        ...

    @abstractmethod
    def get_content(self, title: str) -> str | None:
        ...

    @abstractmethod
    def set_content(self, title: str, text: str) -> None:
        """Replace the whole body of an existing record."""
        ...
