"""Debounced auto-save with a single in-flight write and local fallback.

Rules:
- Every schedule() call restarts the debounce timer (trailing edge); the
  save always serializes the latest document at the time it runs.
- At most one write is in flight. A trigger arriving meanwhile marks the
  scheduler pending, and exactly one more save runs when the write finishes.
- A document identical to the last one the remote store accepted is not
  written again.
- A failed remote write is not retried. The payload goes to the fallback
  store and the status becomes ``saved-local-fallback`` until a later remote
  write succeeds, which also clears the fallback entry.
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from tripdesk.db.repositories import Document, DocumentStore, FallbackStore
from tripdesk.errors import RemoteWriteFailedError
from tripdesk.itinerary.operations import SaveTier
from tripdesk.models.itinerary import CentralItinerary
from tripdesk.sync.timers import LoopTimer, Timer, TimerHandle

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    """Persistence status surfaced to the UI."""

    idle = "idle"
    pending = "pending"
    saving = "saving"
    saved = "saved"
    saved_local_fallback = "saved-local-fallback"


class SaveMetrics:
    """Interface for save metrics."""

    def record_latency(self, target: str, outcome: str, latency_ms: float) -> None:
        """Record save latency."""
        pass

    def inc_error(self, reason: str) -> None:
        """Increment remote write error counter."""
        pass

    def inc_skipped(self) -> None:
        """Increment skipped save counter."""
        pass

    def inc_fallback(self) -> None:
        """Increment fallback write counter."""
        pass


class SaveLogger:
    """Interface for structured save logging."""

    def log_attempt(
        self,
        context_id: str,
        attempt: int,
        target: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a save attempt."""
        pass


def serialize(document: CentralItinerary) -> tuple[Document, str]:
    """JSON payload of a document plus its canonical string form."""
    payload = document.model_dump(mode="json")
    return payload, json.dumps(payload, sort_keys=True)


class AutoSaveScheduler:
    """Persists the latest document of one context."""

    def __init__(
        self,
        context_id: str,
        document_store: DocumentStore,
        fallback_store: FallbackStore,
        snapshot: Callable[[], CentralItinerary | None],
        *,
        timer: Timer | None = None,
        short_delay: float = 2.0,
        long_delay: float = 10.0,
        metrics: SaveMetrics | None = None,
        save_logger: SaveLogger | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            context_id: Context whose document is saved
            document_store: Remote, authoritative store
            fallback_store: Local cache written when the remote write fails
            snapshot: Returns the current document, or None once discarded
            timer: Debounce timer (default: event loop timer)
            short_delay: Debounce window for discrete edits, seconds
            long_delay: Debounce window for free-text edits, seconds
            metrics: Metrics recorder (optional, defaults to no-op)
            save_logger: Structured logger (optional, defaults to no-op)
            clock: Monotonic clock for latency (default: time.monotonic)
        """
        self._context_id = context_id
        self._document_store = document_store
        self._fallback_store = fallback_store
        self._snapshot = snapshot
        self._timer = timer or LoopTimer()
        self._delays = {SaveTier.short: short_delay, SaveTier.long: long_delay}
        self._metrics = metrics or SaveMetrics()
        self._logger = save_logger or SaveLogger()
        self._clock = clock or time.monotonic

        self._handle: TimerHandle | None = None
        self._task: asyncio.Future[None] | None = None
        self._pending = False
        self._closed = False
        self._last_saved: str | None = None
        self._fallback_written = False
        self._attempts = 0

        self.status = SaveStatus.idle
        self.last_error: str | None = None
        self.last_saved_at: datetime | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    @property
    def timer_armed(self) -> bool:
        return self._handle is not None

    @property
    def attempts(self) -> int:
        """Number of remote writes attempted."""
        return self._attempts

    def mark_saved(self, document: CentralItinerary) -> None:
        """Record a document as already present in the remote store."""
        _, self._last_saved = serialize(document)
        self.status = SaveStatus.saved

    def schedule(self, tier: SaveTier = SaveTier.short) -> None:
        """Restart the debounce timer for a save of the latest document."""
        if self._closed:
            return
        self.cancel()
        self._handle = self._timer.call_later(self._delays[tier], self._on_timer)
        if not self.in_flight:
            self.status = SaveStatus.pending

    def cancel(self) -> None:
        """Cancel the debounce timer. An in-flight write is not affected."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def close(self) -> None:
        """Stop scheduling. An in-flight write completes without updating state."""
        self._closed = True
        self._pending = False
        self.cancel()

    async def save_now(self) -> SaveStatus:
        """Save immediately, bypassing the debounce timer."""
        self.cancel()
        self._trigger()
        await self.wait_idle()
        return self.status

    async def wait_idle(self) -> None:
        """Wait until no write is in flight or pending."""
        while self._task is not None:
            await self._task

    def _on_timer(self) -> None:
        self._handle = None
        self._trigger()

    def _trigger(self) -> None:
        if self._closed:
            return
        if self._task is not None:
            self._pending = True
            return
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        try:
            await self._save_once()
        finally:
            self._task = None
            # A newer edit is still waiting for its own save
            if not self._closed and (self._pending or self._handle is not None):
                self.status = SaveStatus.pending
            if self._pending and not self._closed:
                self._pending = False
                self._task = asyncio.ensure_future(self._run())

    async def _save_once(self) -> None:
        document = self._snapshot()
        if document is None:
            return
        payload, serialized = serialize(document)

        if serialized == self._last_saved:
            self._metrics.inc_skipped()
            self._logger.log_attempt(self._context_id, self._attempts, "remote", "skipped", 0.0)
            if not self._closed:
                self._clear_fallback()
                self.status = SaveStatus.saved
            return

        self._attempts += 1
        attempt = self._attempts
        if not self._closed:
            self.status = SaveStatus.saving
        start = self._clock()

        try:
            await self._document_store.put(self._context_id, payload)
        except Exception as e:
            error = RemoteWriteFailedError(getattr(e, "reason", None) or type(e).__name__)
            self._write_fallback(payload, attempt, error, start)
            return

        elapsed_ms = (self._clock() - start) * 1000
        self._metrics.record_latency("remote", "success", elapsed_ms)
        self._logger.log_attempt(self._context_id, attempt, "remote", "success", elapsed_ms)

        if self._closed:
            logger.debug("Save for %s completed after close", self._context_id)
            return

        self._fallback_store.delete(self._context_id)
        self._fallback_written = False
        self._last_saved = serialized
        self.last_error = None
        self.last_saved_at = datetime.now()
        self.status = SaveStatus.saved

    def _write_fallback(
        self, payload: Document, attempt: int, error: RemoteWriteFailedError, start: float
    ) -> None:
        elapsed_ms = (self._clock() - start) * 1000
        self._metrics.record_latency("remote", "error", elapsed_ms)
        self._metrics.inc_error(error.reason)
        self._logger.log_attempt(
            self._context_id, attempt, "remote", "error", elapsed_ms, error_reason=error.reason
        )

        # Written even after close so the edit is not lost
        self._fallback_store.put(self._context_id, payload)
        self._fallback_written = True
        self._metrics.inc_fallback()
        self._logger.log_attempt(self._context_id, attempt, "fallback", "success", 0.0)

        if self._closed:
            return
        self.last_error = error.reason
        self.status = SaveStatus.saved_local_fallback

    def _clear_fallback(self) -> None:
        if self._fallback_written:
            self._fallback_store.delete(self._context_id)
            self._fallback_written = False
