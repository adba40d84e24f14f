"""Tests for providers/local_store.py"""

from unittest.mock import MagicMock

import pytest

from highlight_sync.core.content_fetcher import FetchErrorType, FetchResult
from highlight_sync.core.storage import init_db
from highlight_sync.providers.content_types import Bookmark, BookmarkKind, SaveType
from highlight_sync.providers.document_store import DocumentStoreError
from highlight_sync.providers.local_store import LocalStore


@pytest.fixture
def db():
    db = init_db(":memory:")
    yield db
    db.close()


@pytest.fixture
def fetcher():
    fetcher = MagicMock()
    fetcher.fetch.return_value = FetchResult(success=True, markdown="# Captured\n\nBody.", char_count=17)
    return fetcher


BOOKMARK = Bookmark(url="https://example.com/a", title="Article", tags=("a", "b"))


class TestSaveBookmark:
    """Tests for record creation and update."""

    def test_markdown_record_captures_content(self, db, fetcher):
        store = LocalStore(db, fetcher)
        store.save_bookmark(BOOKMARK, "annotation", SaveType.MARKDOWN)

        record = db.get_record("Article")
        assert record["record_type"] == "markdown"
        assert record["content"] == "# Captured\n\nBody."
        assert record["annotation"] == "annotation"
        assert record["comment"] == "annotation"
        assert record["tags"] == "a,b"
        fetcher.fetch.assert_called_once_with("https://example.com/a")

    def test_existing_record_not_recaptured(self, db, fetcher):
        store = LocalStore(db, fetcher)
        store.save_bookmark(BOOKMARK, "one", SaveType.MARKDOWN)
        store.set_content("Article", "{==marked==}")
        store.save_bookmark(BOOKMARK, "two", SaveType.MARKDOWN)

        assert fetcher.fetch.call_count == 1
        assert store.get_content("Article") == "{==marked==}"
        assert store.get_annotation("Article") == "two"

    def test_failed_capture_still_creates_record(self, db, fetcher):
        fetcher.fetch.return_value = FetchResult(
            success=False, error_type=FetchErrorType.HTTP_4XX, error_message="Client error: 404"
        )
        store = LocalStore(db, fetcher)
        store.save_bookmark(BOOKMARK, "annotation", SaveType.MARKDOWN)

        assert store.get_content("Article") is None
        assert store.get_annotation("Article") == "annotation"

    def test_non_markdown_not_captured(self, db, fetcher):
        store = LocalStore(db, fetcher)
        email = Bookmark(url="https://readwise.io/x", title="Mail", kind=BookmarkKind.EMAIL)
        store.save_bookmark(email, "", SaveType.MARKDOWN)

        assert db.get_record("Mail")["record_type"] == "bookmark"
        fetcher.fetch.assert_not_called()

    def test_without_fetcher(self, db):
        store = LocalStore(db)
        store.save_bookmark(BOOKMARK, "annotation", SaveType.MARKDOWN)
        assert store.get_content("Article") is None


class TestLookups:
    """Tests for lookups and body updates."""

    def test_missing_record(self, db):
        store = LocalStore(db)
        assert store.get_annotation("missing") is None
        assert store.get_content("missing") is None

    def test_set_content_missing_record(self, db):
        with pytest.raises(DocumentStoreError):
            LocalStore(db).set_content("missing", "body")

    def test_closed_database_raises_store_error(self, fetcher):
        db = init_db(":memory:")
        db.close()
        with pytest.raises(DocumentStoreError):
            LocalStore(db, fetcher).get_annotation("Article")
