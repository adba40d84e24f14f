"""Document store kept in the local SQLite state database."""

from __future__ import annotations

import logging
import sqlite3

from highlight_sync.core.content_fetcher import ContentFetcher
from highlight_sync.core.storage import DB
from highlight_sync.providers.content_types import Bookmark, SaveType
from highlight_sync.providers.document_store import DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)


class LocalStore(DocumentStore):
    """Records in the ``records`` table.

    New Markdown records get their body from the article page, extracted with
    ContentFetcher. A failed capture still creates the record, with an empty
    body, so annotations are kept.
    """

    def __init__(self, db: DB, fetcher: ContentFetcher | None = None) -> None:
        self._db = db
        self._fetcher = fetcher

    def _capture(self, url: str) -> str | None:
        if self._fetcher is None or not url:
            return None
        result = self._fetcher.fetch(url)
        if not result.success:
            logger.warning(f"Could not capture {url}: {result.error_message}")
            return None
        return result.markdown

    def save_bookmark(self, bookmark: Bookmark, annotation: str, save_type: SaveType) -> None:
        record_type = bookmark.record_type(save_type)
        try:
            if self._db.get_record(bookmark.title) is None:
                content = self._capture(bookmark.url) if record_type is SaveType.MARKDOWN else None
                self._db.create_record(bookmark.title, record_type.value, bookmark.url, content)
            fields: dict[str, str] = {
                "url": bookmark.url,
                "comment": annotation,
                "annotation": annotation,
            }
            if bookmark.tags:
                fields["tags"] = ",".join(bookmark.tags)
            self._db.update_record(bookmark.title, **fields)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to save {bookmark.title!r}: {e}") from e

    def _field(self, title: str, field: str) -> str | None:
        try:
            record = self._db.get_record(title)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Lookup of {title!r} failed: {e}") from e
        if record is None:
            return None
        return record[field] or None

    def get_annotation(self, title: str) -> str | None:
        return self._field(title, "annotation")

    def get_content(self, title: str) -> str | None:
        return self._field(title, "content")

    def set_content(self, title: str, text: str) -> None:
        try:
            updated = self._db.update_record(title, content=text)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to update {title!r}: {e}") from e
        if not updated:
            raise DocumentStoreError(f"Record not found: {title!r}")
