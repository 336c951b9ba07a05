"""Unit tests for the debounced auto-save scheduler.

Tests cover:
1. Debounce coalescing (short and long windows)
2. At most one write in flight, with one trailing save
3. Change detection
4. Fallback on remote failure and recovery
5. Manual save and close
6. Metrics wiring
"""

import logging

import pytest
from prometheus_client import REGISTRY
from support import GatedDocumentStore, RecordingDocumentStore, VirtualTimer

from tripdesk.db.inmemory import InMemoryFallbackStore
from tripdesk.itinerary.document import update_day
from tripdesk.itinerary.operations import SaveTier
from tripdesk.models import CentralItinerary
from tripdesk.sync.autosave import AutoSaveScheduler, SaveStatus
from tripdesk.utils.logging import StructuredSaveLogger
from tripdesk.utils.metrics import PrometheusSaveMetrics


class DocumentHolder:
    """Mutable reference to the latest document."""

    def __init__(self, document: CentralItinerary) -> None:
        self.document: CentralItinerary | None = document

    def edit(self, notes: str) -> CentralItinerary:
        assert self.document is not None
        self.document = update_day(self.document, 0, {"notes": notes})
        return self.document


def make_scheduler(
    holder: DocumentHolder,
    store: RecordingDocumentStore,
    fallback: InMemoryFallbackStore,
    timer: VirtualTimer,
    **kwargs: object,
) -> AutoSaveScheduler:
    return AutoSaveScheduler(
        "query-1",
        store,
        fallback,
        lambda: holder.document,
        timer=timer,
        short_delay=2.0,
        long_delay=10.0,
        **kwargs,
    )


def counter_value(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestDebounce:
    """Trailing-edge debounce."""

    @pytest.mark.asyncio
    async def test_edits_within_window_coalesce(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        for i in range(5):
            holder.edit(f"draft {i}")
            scheduler.schedule()
            timer.advance(1.0)
        assert store.puts == []
        assert scheduler.status == SaveStatus.pending

        timer.advance(1.0)
        await scheduler.wait_idle()

        assert len(store.puts) == 1
        assert store.puts[0][1]["days"][0]["notes"] == "draft 4"
        assert scheduler.status == SaveStatus.saved
        assert scheduler.last_saved_at is not None

    @pytest.mark.asyncio
    async def test_long_window(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("a long paragraph")
        scheduler.schedule(SaveTier.long)
        timer.advance(9.0)
        await scheduler.wait_idle()
        assert store.puts == []

        timer.advance(1.0)
        await scheduler.wait_idle()
        assert len(store.puts) == 1

    @pytest.mark.asyncio
    async def test_later_short_edit_restarts_window(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("typing")
        scheduler.schedule(SaveTier.long)
        timer.advance(5.0)
        holder.edit("typing more")
        scheduler.schedule(SaveTier.short)
        assert timer.armed == 1

        timer.advance(2.0)
        await scheduler.wait_idle()

        assert len(store.puts) == 1
        assert store.puts[0][1]["days"][0]["notes"] == "typing more"


class TestSingleFlight:
    """At most one write in flight."""

    @pytest.mark.asyncio
    async def test_trigger_during_write_runs_exactly_one_more_save(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = GatedDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("v1")
        scheduler.schedule()
        timer.advance(2.0)
        await store.entered.wait()
        assert scheduler.in_flight
        assert scheduler.status == SaveStatus.saving

        holder.edit("v2")
        scheduler.schedule()
        timer.advance(2.0)
        latest = holder.edit("v3")
        scheduler.schedule()
        timer.advance(2.0)
        assert scheduler.attempts == 1

        store.gate.set()
        await scheduler.wait_idle()

        assert scheduler.attempts == 2
        assert [document["days"][0]["notes"] for _, document in store.puts] == ["v1", "v3"]
        assert store.puts[-1][1] == latest.model_dump(mode="json")
        assert not scheduler.in_flight
        assert scheduler.status == SaveStatus.saved

    @pytest.mark.asyncio
    async def test_edit_during_write_is_not_reported_saved(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = GatedDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("v1")
        scheduler.schedule()
        timer.advance(2.0)
        await store.entered.wait()

        latest = holder.edit("v2")
        scheduler.schedule(SaveTier.long)
        store.gate.set()
        await scheduler.wait_idle()

        assert [document["days"][0]["notes"] for _, document in store.puts] == ["v1"]
        assert scheduler.timer_armed
        assert scheduler.status == SaveStatus.pending

        timer.advance(10.0)
        await scheduler.wait_idle()

        assert store.puts[-1][1] == latest.model_dump(mode="json")
        assert scheduler.status == SaveStatus.saved

    @pytest.mark.asyncio
    async def test_edit_during_failed_write_is_not_reported_saved(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = GatedDocumentStore()
        store.fail_puts = True
        fallback = InMemoryFallbackStore()
        scheduler = make_scheduler(holder, store, fallback, timer)

        holder.edit("v1")
        scheduler.schedule()
        timer.advance(2.0)
        await store.entered.wait()

        holder.edit("v2")
        scheduler.schedule()
        store.gate.set()
        await scheduler.wait_idle()

        assert fallback.get("query-1") is not None
        assert scheduler.status == SaveStatus.pending


class TestChangeDetection:
    """Unchanged documents are not rewritten."""

    @pytest.mark.asyncio
    async def test_document_matching_last_save_is_skipped(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(
            holder, store, InMemoryFallbackStore(), timer, metrics=PrometheusSaveMetrics()
        )
        scheduler.mark_saved(scenario_itinerary)
        skipped_before = counter_value("itinerary_save_skipped_total")

        scheduler.schedule()
        timer.advance(2.0)
        await scheduler.wait_idle()

        assert store.puts == []
        assert scheduler.attempts == 0
        assert scheduler.status == SaveStatus.saved
        assert counter_value("itinerary_save_skipped_total") == skipped_before + 1

    @pytest.mark.asyncio
    async def test_saving_same_edit_twice_writes_once(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("once")
        await scheduler.save_now()
        await scheduler.save_now()

        assert len(store.puts) == 1

    @pytest.mark.asyncio
    async def test_discarded_document_is_not_saved(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.document = None
        await scheduler.save_now()

        assert store.puts == []


class TestFallback:
    """Remote failure goes to the fallback store."""

    @pytest.mark.asyncio
    async def test_failed_write_goes_to_fallback(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        store.fail_puts = True
        fallback = InMemoryFallbackStore()
        scheduler = make_scheduler(
            holder, store, fallback, timer, metrics=PrometheusSaveMetrics()
        )
        errors_before = counter_value(
            "itinerary_save_errors_total", {"reason": "connection refused"}
        )
        fallback_before = counter_value("itinerary_fallback_writes_total")

        latest = holder.edit("offline edit")
        scheduler.schedule()
        timer.advance(2.0)
        await scheduler.wait_idle()

        assert scheduler.status == SaveStatus.saved_local_fallback
        assert scheduler.status.value == "saved-local-fallback"
        assert scheduler.last_error == "connection refused"
        assert fallback.get("query-1") == latest.model_dump(mode="json")
        assert await store.get("query-1") is None
        assert (
            counter_value("itinerary_save_errors_total", {"reason": "connection refused"})
            == errors_before + 1
        )
        assert counter_value("itinerary_fallback_writes_total") == fallback_before + 1

    @pytest.mark.asyncio
    async def test_failed_write_is_not_retried(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        store.fail_puts = True
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("offline edit")
        scheduler.schedule()
        timer.advance(2.0)
        await scheduler.wait_idle()
        timer.advance(60.0)
        await scheduler.wait_idle()

        assert len(store.puts) == 1
        assert timer.armed == 0

    @pytest.mark.asyncio
    async def test_later_success_clears_fallback(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        store.fail_puts = True
        fallback = InMemoryFallbackStore()
        scheduler = make_scheduler(holder, store, fallback, timer)

        holder.edit("offline edit")
        await scheduler.save_now()
        assert fallback.get("query-1") is not None

        store.fail_puts = False
        latest = holder.edit("back online")
        status = await scheduler.save_now()

        assert status == SaveStatus.saved
        assert scheduler.last_error is None
        assert fallback.get("query-1") is None
        assert await store.get("query-1") == latest.model_dump(mode="json")


class TestManualSaveAndClose:
    """save_now and close."""

    @pytest.mark.asyncio
    async def test_save_now_bypasses_timer(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("manual")
        scheduler.schedule(SaveTier.long)
        status = await scheduler.save_now()

        assert status == SaveStatus.saved
        assert len(store.puts) == 1
        assert not scheduler.timer_armed
        assert timer.armed == 0

    @pytest.mark.asyncio
    async def test_close_cancels_pending_timer(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = RecordingDocumentStore()
        scheduler = make_scheduler(holder, store, InMemoryFallbackStore(), timer)

        holder.edit("never saved")
        scheduler.schedule()
        scheduler.close()
        timer.advance(10.0)
        await scheduler.wait_idle()
        scheduler.schedule()

        assert store.puts == []
        assert timer.armed == 0

    @pytest.mark.asyncio
    async def test_close_during_write_lets_it_finish_quietly(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = GatedDocumentStore()
        fallback = InMemoryFallbackStore()
        scheduler = make_scheduler(holder, store, fallback, timer)

        holder.edit("in flight")
        scheduler.schedule()
        timer.advance(2.0)
        await store.entered.wait()
        holder.edit("after close")
        scheduler.schedule()
        scheduler.close()
        store.gate.set()
        await scheduler.wait_idle()

        assert len(store.puts) == 1
        assert store.puts[0][1]["days"][0]["notes"] == "in flight"
        assert scheduler.status == SaveStatus.saving
        assert scheduler.last_saved_at is None

    @pytest.mark.asyncio
    async def test_write_failing_after_close_still_reaches_fallback(
        self, scenario_itinerary: CentralItinerary, timer: VirtualTimer
    ) -> None:
        holder = DocumentHolder(scenario_itinerary)
        store = GatedDocumentStore()
        store.fail_puts = True
        fallback = InMemoryFallbackStore()
        scheduler = make_scheduler(holder, store, fallback, timer)

        latest = holder.edit("in flight")
        scheduler.schedule()
        timer.advance(2.0)
        await store.entered.wait()
        scheduler.close()
        store.gate.set()
        await scheduler.wait_idle()

        assert fallback.get("query-1") == latest.model_dump(mode="json")
        assert scheduler.status == SaveStatus.saving


class TestStructuredLogging:
    """Structured save logs."""

    def test_remote_failure_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="tripdesk.utils.logging")

        StructuredSaveLogger().log_attempt(
            "query-1", 3, "remote", "error", 12.346, error_reason="timeout"
        )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.structured == {
            "context_id": "query-1",
            "attempt": 3,
            "target": "remote",
            "outcome": "error",
            "latency_ms": 12.35,
            "error_reason": "timeout",
        }

    def test_remote_success_logged_as_info(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="tripdesk.utils.logging")

        StructuredSaveLogger().log_attempt("query-1", 1, "remote", "success", 5.0)

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert "error_reason" not in record.structured
