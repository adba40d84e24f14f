"""Sync run orchestrating fetch -> save -> highlight.

A run works through these phases:
1. FETCH: read the watermark and fetch bookmarks updated since then
2. SAVE: create/update one record per bookmark with its merged annotation
3. PAUSE: give the document store time to index newly created records
4. HIGHLIGHT: mark highlighted passages in each Markdown record body

Failures of a single bookmark are logged and counted, and the run goes on with
the next one. Only a failure to fetch aborts the run.
"""

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterator

from highlight_sync.core.annotation import render_annotation
from highlight_sync.core.highlighter import highlight_markdown
from highlight_sync.core.merge import merge_annotations
from highlight_sync.core.settings import Settings
from highlight_sync.core.storage import DB
from highlight_sync.core.text import is_whitespace_only
from highlight_sync.providers.content_types import Bookmark
from highlight_sync.providers.document_store import DocumentStore, DocumentStoreError
from highlight_sync.providers.readwise import ReadwiseClient

logger = logging.getLogger(__name__)

WATERMARK_KEY = "last_sync_at"


class SyncPhase(str, Enum):
    """Phases of a sync run."""

    IDLE = "idle"
    FETCH = "fetch"
    SAVE = "save"
    PAUSE = "pause"
    HIGHLIGHT = "highlight"
    DONE = "done"


class SyncStatus(str, Enum):
    """Status of a sync run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncEventType(str, Enum):
    """Types of events emitted during a sync run."""

    FETCHED = "fetched"
    WATERMARK_FAILED = "watermark_failed"
    ITEM_SAVED = "item_saved"
    ITEM_HIGHLIGHTED = "item_highlighted"
    ITEM_SKIPPED = "item_skipped"
    ITEM_FAILED = "item_failed"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SyncEvent:
    """Event emitted during a sync run."""

    type: SyncEventType
    phase: SyncPhase
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SyncJob:
    """Tracks state of one sync run."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: SyncStatus = SyncStatus.PENDING
    phase: SyncPhase = SyncPhase.IDLE
    updated_after: datetime | None = None
    items_total: int = 0
    items_saved: int = 0
    items_highlighted: int = 0
    items_skipped: int = 0
    items_failed: int = 0
    lines_highlighted: int = 0
    highlights_unmatched: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None

    def touch(self) -> None:
        """Update last_activity timestamp."""
        self.last_activity = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "phase": self.phase.value,
            "updated_after": self.updated_after.isoformat() if self.updated_after else None,
            "items_total": self.items_total,
            "items_saved": self.items_saved,
            "items_highlighted": self.items_highlighted,
            "items_skipped": self.items_skipped,
            "items_failed": self.items_failed,
            "lines_highlighted": self.lines_highlighted,
            "highlights_unmatched": self.highlights_unmatched,
            "started_at": self.started_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "error": self.error,
        }


# ==================== Watermark ====================


def load_watermark(db: DB) -> datetime | None:
    """Timestamp of the last completed fetch, or None to fetch everything."""
    value = db.get_setting(WATERMARK_KEY)
    if not value:
        return None
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Invalid {WATERMARK_KEY} value: {value}, doing full sync")
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def save_watermark(db: DB, ts: datetime) -> bool:
    """Persist the watermark. A failure is logged, never raised."""
    try:
        db.set_setting(WATERMARK_KEY, ts.isoformat())
    except (sqlite3.Error, OSError) as e:
        logger.warning(f"Could not save {WATERMARK_KEY} ({e}); the next run will fetch the same window again")
        return False
    logger.info(f"Saved {WATERMARK_KEY} = {ts.isoformat()}")
    return True


# ==================== Per-bookmark steps ====================


def build_annotation(store: DocumentStore, bookmark: Bookmark) -> str:
    """Annotation for ``bookmark`` merged with what the store already has."""
    annotation = render_annotation(bookmark)
    existing = store.get_annotation(bookmark.title)
    if not is_whitespace_only(existing):
        annotation = merge_annotations(annotation, existing)
    return annotation


def _item_data(bookmark: Bookmark, **extra: Any) -> dict[str, Any]:
    return {"title": bookmark.title, "url": bookmark.url, "kind": bookmark.kind.value, **extra}


def _save_one(job: SyncJob, bookmark: Bookmark, store: DocumentStore, settings: Settings) -> SyncEvent:
    try:
        annotation = build_annotation(store, bookmark)
        store.save_bookmark(bookmark, annotation, settings.save_type)
    except DocumentStoreError as e:
        logger.warning(f"Error saving {bookmark.title}: {e}")
        job.items_failed += 1
        job.touch()
        return SyncEvent(SyncEventType.ITEM_FAILED, SyncPhase.SAVE, _item_data(bookmark, error=str(e)))
    except Exception as e:
        logger.exception(f"Unexpected error saving {bookmark.title}")
        job.items_failed += 1
        job.touch()
        return SyncEvent(SyncEventType.ITEM_FAILED, SyncPhase.SAVE, _item_data(bookmark, error=str(e)))

    job.items_saved += 1
    job.touch()
    logger.info(f"Saved {bookmark.title}")
    return SyncEvent(SyncEventType.ITEM_SAVED, SyncPhase.SAVE, _item_data(bookmark))


def highlight_bookmark(store: DocumentStore, bookmark: Bookmark, *, verbose: bool = False) -> dict[str, Any] | None:
    """Mark the bookmark's highlights in its stored body.

    Returns stats for the run, or None when the record has no body to mark.
    """
    content = store.get_content(bookmark.title)
    if is_whitespace_only(content):
        return None
    result = highlight_markdown(content, bookmark.highlights, verbose=verbose)
    if result.changed:
        store.set_content(bookmark.title, result.body)
    return {
        "matched_lines": result.matched_lines,
        "unmatched": len(result.unmatched),
        "changed": result.changed,
    }


def _highlight_one(job: SyncJob, bookmark: Bookmark, store: DocumentStore, settings: Settings) -> SyncEvent:
    try:
        stats = highlight_bookmark(store, bookmark, verbose=settings.verbose)
    except DocumentStoreError as e:
        logger.warning(f"Error highlighting {bookmark.title}: {e}")
        job.items_failed += 1
        job.touch()
        return SyncEvent(SyncEventType.ITEM_FAILED, SyncPhase.HIGHLIGHT, _item_data(bookmark, error=str(e)))
    except Exception as e:
        logger.exception(f"Unexpected error highlighting {bookmark.title}")
        job.items_failed += 1
        job.touch()
        return SyncEvent(SyncEventType.ITEM_FAILED, SyncPhase.HIGHLIGHT, _item_data(bookmark, error=str(e)))

    job.touch()
    if stats is None:
        logger.warning(f"Content not found for {bookmark.title}")
        job.items_skipped += 1
        return SyncEvent(
            SyncEventType.ITEM_SKIPPED,
            SyncPhase.HIGHLIGHT,
            _item_data(bookmark, reason="content not found"),
        )

    job.items_highlighted += 1
    job.lines_highlighted += stats["matched_lines"]
    job.highlights_unmatched += stats["unmatched"]
    logger.info(
        f"Highlighted {bookmark.title}: {stats['matched_lines']} lines, "
        f"{stats['unmatched']} highlights not found"
    )
    return SyncEvent(SyncEventType.ITEM_HIGHLIGHTED, SyncPhase.HIGHLIGHT, _item_data(bookmark, **stats))


# ==================== Run ====================


def run_sync(
    source: ReadwiseClient,
    store: DocumentStore,
    db: DB,
    settings: Settings,
    *,
    full: bool = False,
    job: SyncJob | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[SyncEvent]:
    """Run one sync, yielding an event per item and a final COMPLETED/FAILED.

    Args:
        source: Highlight source (normally a ReadwiseClient)
        store: Document store holding the records
        db: State database holding the watermark
        settings: Save type, indexing pause and verbosity
        full: Ignore the watermark and fetch everything
        job: Optional SyncJob to track counters in
        sleep: Used for the indexing pause
    """
    if job is None:
        job = SyncJob()
    job.status = SyncStatus.RUNNING

    # ========== PHASE 1: FETCH ==========
    job.phase = SyncPhase.FETCH
    job.updated_after = None if full else load_watermark(db)
    if job.updated_after:
        logger.info(f"Incremental sync: fetching highlights updated after {job.updated_after.isoformat()}")

    fetch_started = datetime.now(timezone.utc)
    try:
        bookmarks = source.fetch_bookmarks(updated_after=job.updated_after)
    except Exception as e:
        logger.exception(f"Fetching highlights failed: {e}")
        job.status = SyncStatus.FAILED
        job.error = str(e)
        job.touch()
        yield SyncEvent(SyncEventType.FAILED, job.phase, {"error": str(e), **job.to_dict()})
        return

    job.items_total = len(bookmarks)
    job.touch()
    yield SyncEvent(SyncEventType.FETCHED, job.phase, {"count": len(bookmarks)})

    # Everything up to fetch_started is in hand now
    if not save_watermark(db, fetch_started):
        yield SyncEvent(SyncEventType.WATERMARK_FAILED, job.phase, {"watermark": fetch_started.isoformat()})

    # ========== PHASE 2: SAVE ==========
    job.phase = SyncPhase.SAVE
    saved: list[Bookmark] = []
    for bookmark in bookmarks:
        event = _save_one(job, bookmark, store, settings)
        if event.type == SyncEventType.ITEM_SAVED:
            saved.append(bookmark)
        yield event

    to_highlight = [b for b in saved if b.can_highlight(settings.save_type) and b.highlights]

    # ========== PHASE 3: PAUSE ==========
    if to_highlight and settings.index_pause_seconds > 0:
        job.phase = SyncPhase.PAUSE
        logger.debug(f"Waiting {settings.index_pause_seconds:.1f}s for the store to index new records")
        sleep(settings.index_pause_seconds)

    # ========== PHASE 4: HIGHLIGHT ==========
    job.phase = SyncPhase.HIGHLIGHT
    for bookmark in to_highlight:
        yield _highlight_one(job, bookmark, store, settings)

    # ========== DONE ==========
    job.phase = SyncPhase.DONE
    job.status = SyncStatus.COMPLETED
    job.touch()
    yield SyncEvent(SyncEventType.COMPLETED, job.phase, job.to_dict())
