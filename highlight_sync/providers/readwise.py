"""Readwise Export API client: the source of bookmarks and highlights."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Iterator

import httpx

from highlight_sync.core.text import scrub, to_ascii
from highlight_sync.providers.content_types import Bookmark, BookmarkKind, Highlight

logger = logging.getLogger(__name__)

READWISE_BASE_URL = "https://readwise.io/api"


class ReadwiseError(Exception):
    """Base exception for Readwise API errors."""


class ReadwiseAuthError(ReadwiseError):
    """Authentication failed."""


class ReadwiseRateLimitError(ReadwiseError):
    """Rate limit exceeded after all retries."""


def _tag_names(tags: list[dict[str, Any]] | None) -> tuple[str, ...]:
    if not tags:
        return ()
    return tuple(t["name"] for t in tags if t.get("name"))


def _location(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_export_highlight(hl: dict[str, Any]) -> Highlight:
    """Convert an Export API highlight to a Highlight."""
    return Highlight(
        text=scrub(hl.get("text")),
        note=scrub(hl.get("note")) or None,
        tags=_tag_names(hl.get("tags")),
        location=_location(hl.get("location")),
        source_link=hl.get("url") or hl.get("readwise_url"),
    )


def parse_export_book(book: dict[str, Any]) -> Bookmark:
    """Convert an Export API book to a Bookmark.

    Emails (``mailto:``) and private documents such as uploaded books
    (``private:``) have no usable source URL, the Reader URL is used instead.
    """
    kind = BookmarkKind.ARTICLE
    url = book.get("source_url") or ""
    if url.startswith("mailto:"):
        kind = BookmarkKind.EMAIL
        url = book.get("unique_url") or url
    elif url.startswith("private:"):
        kind = BookmarkKind.BOOK
        url = book.get("unique_url") or url
    elif not url:
        url = book.get("unique_url") or ""

    title = to_ascii(book.get("readable_title") or book.get("title")).strip() or "Untitled"

    highlights = tuple(
        parse_export_highlight(hl)
        for hl in book.get("highlights", [])
        if not hl.get("is_deleted")
    )

    return Bookmark(
        url=url,
        title=title,
        kind=kind,
        author=book.get("author"),
        cover_image=book.get("cover_image_url"),
        doc_note=scrub(book.get("document_note")) or None,
        summary=scrub(book.get("summary")) or None,
        tags=_tag_names(book.get("book_tags")),
        highlights=highlights,
    )


class ReadwiseClient:
    """Client for the Readwise Export API (v2)."""

    def __init__(self, token: str, *, transport: httpx.BaseTransport | None = None) -> None:
        if not token:
            raise ValueError("Readwise API token is required")
        self._token = token
        self._client = httpx.Client(
            base_url=READWISE_BASE_URL,
            headers={"Authorization": f"Token {token}"},
            timeout=30.0,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ReadwiseClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _request_with_retry(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
    ) -> httpx.Response:
        """Make HTTP request with exponential backoff retry on 429.

        Raises:
            ReadwiseRateLimitError: If rate limited after all retries
            ReadwiseAuthError: If authentication fails
        """
        delay = base_delay

        for attempt in range(max_retries + 1):
            resp = self._client.request(method, url, params=params)

            if resp.status_code == 401:
                raise ReadwiseAuthError("Invalid Readwise API token")

            if resp.status_code == 429:
                if attempt == max_retries:
                    raise ReadwiseRateLimitError(
                        f"Rate limit exceeded after {max_retries} retries"
                    )

                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        wait_time = float(retry_after)
                    except ValueError:
                        wait_time = delay
                else:
                    wait_time = delay

                wait_time = min(wait_time, max_delay)
                logger.warning(
                    f"Rate limited (429). Waiting {wait_time:.1f}s "
                    f"(attempt {attempt + 1}/{max_retries + 1})"
                )
                time.sleep(wait_time)
                delay = min(delay * 2, max_delay)
                continue

            resp.raise_for_status()
            return resp

        raise ReadwiseRateLimitError("Rate limit handling failed")

    def iter_export_books(self, *, updated_after: datetime | None = None) -> Iterator[dict[str, Any]]:
        """Yield raw Export API books, following page cursors."""
        params: dict[str, str] = {}
        if updated_after:
            params["updatedAfter"] = updated_after.isoformat()

        while True:
            resp = self._request_with_retry("GET", "/v2/export/", params=params)
            data = resp.json()
            yield from data.get("results", [])

            next_cursor = data.get("nextPageCursor")
            if not next_cursor:
                break
            params["pageCursor"] = str(next_cursor)

    def fetch_bookmarks(self, *, updated_after: datetime | None = None) -> list[Bookmark]:
        """Fetch every bookmark with highlights updated after ``updated_after``.

        None fetches everything. Books that cannot be parsed are logged and
        skipped; transport and auth errors propagate.
        """
        bookmarks: list[Bookmark] = []
        try:
            for book in self.iter_export_books(updated_after=updated_after):
                try:
                    bookmarks.append(parse_export_book(book))
                except (KeyError, TypeError, AttributeError) as e:
                    book_id = book.get("user_book_id", "unknown") if isinstance(book, dict) else "unknown"
                    logger.warning(f"Failed to parse Export book {book_id}: {e}")
        except httpx.HTTPError as e:
            raise ReadwiseError(f"Readwise request failed: {e}") from e
        logger.info(f"Fetched {len(bookmarks)} bookmarks from Readwise")
        return bookmarks
