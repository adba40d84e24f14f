"""Content fetcher capturing article pages as Markdown.

Uses trafilatura for content extraction. The local record store uses this to
create the Markdown body that highlights are later marked in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import httpx
import trafilatura
from trafilatura.settings import use_config

logger = logging.getLogger(__name__)


class FetchErrorType(str, Enum):
    """Classification of fetch errors."""

    TIMEOUT = "timeout"
    HTTP_4XX = "http_4xx"
    HTTP_5XX = "http_5xx"
    EXTRACTION_FAILED = "extraction_failed"
    CONNECTION_ERROR = "connection_error"
    NO_CONTENT = "no_content"


@dataclass
class FetchResult:
    """Result of a content fetch operation."""

    success: bool
    markdown: str | None = None
    char_count: int = 0
    error_type: FetchErrorType | None = None
    error_message: str | None = None
    http_status: int | None = None


# Minimum content length to consider extraction successful
MIN_CONTENT_LENGTH = 200

# Maximum content size to fetch (10MB)
MAX_CONTENT_SIZE = 10 * 1024 * 1024

FETCH_TIMEOUT = 30.0


class ContentFetcher:
    """Fetches a URL and extracts its readable content as Markdown."""

    def __init__(self, *, transport: httpx.BaseTransport | None = None) -> None:
        self._config = use_config()
        self._config.set("DEFAULT", "EXTRACTION_TIMEOUT", "30")
        self._config.set("DEFAULT", "MIN_OUTPUT_SIZE", str(MIN_CONTENT_LENGTH))

        self._client = httpx.Client(
            timeout=httpx.Timeout(FETCH_TIMEOUT),
            follow_redirects=True,
            transport=transport,
            headers={
                "User-Agent": "Mozilla/5.0 (compatible; highlight-sync/1.0)",
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ContentFetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` and extract Markdown. Never raises."""
        try:
            response = self._client.get(url)

            if response.status_code >= 500:
                return FetchResult(
                    success=False,
                    error_type=FetchErrorType.HTTP_5XX,
                    error_message=f"Server error: {response.status_code}",
                    http_status=response.status_code,
                )

            if response.status_code >= 400:
                return FetchResult(
                    success=False,
                    error_type=FetchErrorType.HTTP_4XX,
                    error_message=f"Client error: {response.status_code}",
                    http_status=response.status_code,
                )

            content_length = response.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > MAX_CONTENT_SIZE:
                return FetchResult(
                    success=False,
                    error_type=FetchErrorType.EXTRACTION_FAILED,
                    error_message=f"Content too large: {content_length} bytes",
                    http_status=response.status_code,
                )

            markdown = trafilatura.extract(
                response.text,
                config=self._config,
                output_format="markdown",
                include_comments=False,
                include_tables=True,
                include_links=True,
                favor_recall=True,
            )

            if not markdown:
                return FetchResult(
                    success=False,
                    error_type=FetchErrorType.NO_CONTENT,
                    error_message="No content could be extracted",
                    http_status=response.status_code,
                )

            if len(markdown) < MIN_CONTENT_LENGTH:
                return FetchResult(
                    success=False,
                    error_type=FetchErrorType.EXTRACTION_FAILED,
                    error_message=f"Content too short: {len(markdown)} chars",
                    http_status=response.status_code,
                )

            return FetchResult(
                success=True,
                markdown=markdown,
                char_count=len(markdown),
                http_status=response.status_code,
            )

        except httpx.TimeoutException:
            return FetchResult(
                success=False,
                error_type=FetchErrorType.TIMEOUT,
                error_message=f"Request timed out after {FETCH_TIMEOUT}s",
            )

        except httpx.ConnectError as e:
            return FetchResult(
                success=False,
                error_type=FetchErrorType.CONNECTION_ERROR,
                error_message=f"Connection error: {e}",
            )

        except Exception as e:
            logger.exception(f"Unexpected error fetching {url}")
            return FetchResult(
                success=False,
                error_type=FetchErrorType.EXTRACTION_FAILED,
                error_message=f"Unexpected error: {type(e).__name__}: {e}",
            )
