"""Clipboard capture pipeline.

    detector -> settle filter -> feedback guard -> classifier
             -> deduplicator -> history store -> categorized cache

Everything runs on the caller's thread: ``tick()`` is driven by the app's
poll timer and the settle delay comes back through the injected scheduler.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from clipsift.cache import CategorizedCache
from clipsift.classifier import classify
from clipsift.config import PREVIEW_LENGTH, EngineSettings
from clipsift.detector import ChangeDetector
from clipsift.dedup import SimilarityDeduplicator
from clipsift.errors import ClipsiftError, PersistenceError
from clipsift.guard import FeedbackGuard
from clipsift.history import HistoryStore, Persistence
from clipsift.models import (
    CacheSnapshot,
    Category,
    ClipboardEntry,
    ClipboardPayload,
    HistoryEvent,
    MutationEvent,
)
from clipsift.settle import Scheduler, SettleFilter
from clipsift.utils import compute_hash, format_bytes, get_image_dimensions, save_image, truncate_text

logger = logging.getLogger(__name__)

Listener = Callable[[HistoryEvent], None]


class Clipboard(Protocol):
    def current_change_marker(self) -> int: ...

    def read_text(self) -> str | None: ...

    def read_image_bytes(self) -> bytes | None: ...

    def read_file_reference(self) -> str | None: ...

    def write_text(self, text: str) -> None: ...

    def write_image_bytes(self, data: bytes) -> None: ...


class ClipboardEngine:
    def __init__(
        self,
        clipboard: Clipboard,
        scheduler: Scheduler,
        persistence: Persistence | None = None,
        clock: Callable[[], float] = time.time,
        settings: EngineSettings | None = None,
        image_dir: Path | None = None,
        on_error: Callable[[ClipsiftError], None] | None = None,
    ):
        self._settings = settings or EngineSettings()
        self._clipboard = clipboard
        self._persistence = persistence
        self._clock = clock
        self._image_dir = image_dir
        self._on_error = on_error

        self._detector = ChangeDetector(clipboard, clock)
        self._settle = SettleFilter(
            scheduler,
            settle_delay=self._settings.settle_delay,
            burst_window=self._settings.burst_window,
            burst_limit=self._settings.burst_limit,
            min_interval=self._settings.min_interval,
        )
        self._guard = FeedbackGuard(self._settings.guard_window, clock)
        self._dedup = SimilarityDeduplicator(
            threshold=self._settings.similarity_threshold,
            max_compare_length=self._settings.max_compare_length,
        )
        self.history = HistoryStore(persistence)
        self.cache = CategorizedCache(self._settings.bucket_size)

        self._listeners: list[Listener] = []
        self._last_settled_marker: int | None = None
        self._running = True

    # -- lifecycle -----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    def load(self) -> int:
        """Restore persisted history and rebuild the cache from it."""
        if self._persistence is None:
            return 0
        loaded = self.history.restore(self._persistence.load_all())
        oldest_first = list(reversed(self.history.list(limit=len(self.history))))
        self.cache.rebuild(oldest_first)
        self._dedup.seed(self._latest_text())
        logger.info("Loaded %d clipboard entries", loaded)
        return loaded

    def start(self) -> None:
        self._running = True
        self._detector.sync()

    def stop(self) -> None:
        self._running = False
        self._settle.reset()
        self._guard.clear()

    # -- polling -------------------------------------------------------------

    def tick(self) -> bool:
        """Poll once. Returns True when a settled read was scheduled."""
        if not self._running:
            return False
        event = self._detector.poll()
        if event is None:
            return False
        return self._settle.submit(event, self._on_settled)

    def _on_settled(self, event: MutationEvent) -> None:
        if not self._running:
            return
        if self._settle.is_bursting(self._clock()):
            logger.debug("Clipboard still changing rapidly, dropping settled read")
            return

        payload = self._read_payload()
        if payload is None or payload.is_empty:
            return
        if payload.change_marker == self._last_settled_marker:
            return
        self._last_settled_marker = payload.change_marker

        self.process(payload, observed_at=event.observed_at)

    def _read_payload(self) -> ClipboardPayload | None:
        try:
            marker = self._clipboard.current_change_marker()
            image = self._clipboard.read_image_bytes()
            file_path = None if image is not None else self._clipboard.read_file_reference()
            text = self._clipboard.read_text() if image is None and file_path is None else None
        except Exception:
            logger.debug("Clipboard read failed", exc_info=True)
            return None
        return ClipboardPayload(change_marker=marker, text=text, image_bytes=image, file_path=file_path)

    # -- acceptance ----------------------------------------------------------

    def process(self, payload: ClipboardPayload, observed_at: float | None = None) -> ClipboardEntry | None:
        """Run a settled payload through guard, classifier and filters."""
        content = _guard_content(payload)
        if content is None:
            return None
        if self._guard.is_internal(content, observed_at):
            return None

        category = classify(payload)
        if category is None:
            return None

        if category == Category.IMAGE:
            entry = self._build_image_entry(payload.image_bytes)
        elif category == Category.FILE:
            entry = self._build_file_entry(payload.file_path)
        else:
            entry = self._build_text_entry(payload.text, category)
        if entry is None:
            return None

        latest = self.history.latest()
        if latest is not None and latest.content_hash == entry.content_hash:
            logger.debug("Skipping repeat of the most recent entry")
            return None

        return self._accept(entry)

    def _next_timestamp(self) -> datetime:
        now = datetime.fromtimestamp(self._clock())
        latest = self.history.latest_timestamp()
        if latest is not None and latest > now:
            return latest
        return now

    def _build_text_entry(self, text: str, category: Category) -> ClipboardEntry | None:
        text_bytes = text.encode("utf-8")
        if len(text_bytes) > self._settings.max_text_size:
            logger.warning("Text too large (%d bytes), skipping", len(text_bytes))
            return None
        if not self._dedup.should_accept(text):
            return None

        return ClipboardEntry(
            id=uuid.uuid4().hex,
            category=category,
            text_content=text,
            payload_path=None,
            preview=truncate_text(text, PREVIEW_LENGTH),
            content_hash=compute_hash(text_bytes),
            byte_size=len(text_bytes),
            created_at=self._next_timestamp(),
        )

    def _build_image_entry(self, img_bytes: bytes) -> ClipboardEntry | None:
        if len(img_bytes) > self._settings.max_image_size:
            logger.warning("Image too large (%d bytes), skipping", len(img_bytes))
            return None

        content_hash = compute_hash(img_bytes)
        try:
            image_path = save_image(img_bytes, content_hash, self._image_dir)
        except OSError:
            logger.exception("Could not store clipboard image")
            return None

        width, height = get_image_dimensions(img_bytes)
        preview = f"[Image: {width}x{height}]" if width > 0 else f"[Image: {format_bytes(len(img_bytes))}]"

        return ClipboardEntry(
            id=uuid.uuid4().hex,
            category=Category.IMAGE,
            text_content=None,
            payload_path=str(image_path),
            preview=preview,
            content_hash=content_hash,
            byte_size=len(img_bytes),
            created_at=self._next_timestamp(),
        )

    def _build_file_entry(self, file_path: str) -> ClipboardEntry:
        path_bytes = file_path.encode("utf-8")
        return ClipboardEntry(
            id=uuid.uuid4().hex,
            category=Category.FILE,
            text_content=None,
            payload_path=file_path,
            preview=truncate_text(Path(file_path).name or file_path, PREVIEW_LENGTH),
            content_hash=compute_hash(path_bytes),
            byte_size=len(path_bytes),
            created_at=self._next_timestamp(),
        )

    def _accept(self, entry: ClipboardEntry) -> ClipboardEntry:
        error = None
        try:
            self.history.append(entry)
        except PersistenceError as exc:
            logger.exception("Could not persist clipboard entry %s", entry.id)
            error = exc

        self.cache.add(entry)
        if entry.text_content is not None:
            self._dedup.remember(entry.text_content)
        logger.info("Captured %s entry (%s)", entry.category.value, format_bytes(entry.byte_size))

        self._publish(HistoryEvent("added", self.cache.snapshot(), entry))
        self._enforce_retention()
        if error is not None:
            self._report(error)
        return entry

    def _latest_text(self) -> str | None:
        return next((e.text_content for e in self.history if e.category.is_textual), None)

    def _enforce_retention(self) -> None:
        while len(self.history) > self._settings.max_entries:
            oldest = self.history.oldest()
            self.remove(oldest.id)

    # -- consumers -----------------------------------------------------------

    def snapshot(self) -> CacheSnapshot:
        return self.cache.snapshot()

    def list(self, limit: int = 25, offset: int = 0) -> list[ClipboardEntry]:
        return self.history.list(limit, offset)

    def get(self, entry_id: str) -> ClipboardEntry:
        return self.history.get(entry_id)

    def remove(self, entry_id: str) -> bool:
        try:
            entry = self.history.get(entry_id)
        except KeyError:
            return False

        error = None
        try:
            self.history.remove(entry_id)
        except PersistenceError as exc:
            logger.exception("Could not delete clipboard entry %s from storage", entry_id)
            error = exc

        if entry.text_content is not None and entry.text_content == self._dedup.last_text:
            self._dedup.seed(self._latest_text())
        self.cache.discard(entry_id, backfill=iter(self.history))
        self._publish(HistoryEvent("removed", self.cache.snapshot(), entry))
        if error is not None:
            self._report(error)
        return True

    def clear(self) -> None:
        error = None
        try:
            self.history.clear()
        except PersistenceError as exc:
            logger.exception("Could not clear clipboard storage")
            error = exc
        self.cache.clear()
        self._dedup.seed(None)
        self._publish(HistoryEvent("cleared", self.cache.snapshot()))
        if error is not None:
            self._report(error)

    def copy_back(self, entry_id: str) -> bool:
        """Put a stored entry back on the clipboard without re-recording it."""
        entry = self.history.get(entry_id)
        last = self._detector.last_marker
        try:
            if entry.category == Category.IMAGE:
                data = Path(entry.payload_path).read_bytes()
                self._guard.mark_internal_write(data)
                self._clipboard.write_image_bytes(data)
            else:
                text = entry.text_content if entry.text_content is not None else entry.payload_path
                self._guard.mark_internal_write(text)
                self._clipboard.write_text(text)
        except Exception:
            logger.exception("Error copying entry to clipboard")
            self._guard.clear()
            return False

        # Our write bumps the marker once; anything else is left for the next poll.
        self._detector.sync(expected=None if last is None else last + 1)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, event: HistoryEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Clipboard listener failed")

    def _report(self, error: ClipsiftError) -> None:
        if self._on_error is not None:
            self._on_error(error)


def _guard_content(payload: ClipboardPayload) -> str | bytes | None:
    if payload.image_bytes is not None:
        return payload.image_bytes
    if payload.file_path is not None:
        return payload.file_path
    return payload.text
