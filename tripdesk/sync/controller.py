"""Synchronization controller: owner of the in-memory itinerary of one context.

State machine::

    uninitialized -> loading -> ready -> (mutating -> ready)* -> cleared

Mutations apply synchronously, so no other code runs between reading the
current document and replacing it. Listeners are notified before any save
starts; persistence outcome is only visible through ``save_status``.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from pydantic import ValidationError

from tripdesk.config import Settings, get_settings
from tripdesk.db.repositories import DocumentStore, FallbackStore
from tripdesk.errors import (
    InvalidStateError,
    LoadFailedError,
    MalformedDocumentError,
    NoMatchingSlabError,
)
from tripdesk.itinerary.document import new_itinerary
from tripdesk.itinerary.operations import Operation, SaveTier
from tripdesk.models.common import MarkupType
from tripdesk.models.itinerary import CentralItinerary, Travelers
from tripdesk.models.pricing import MarkupRule
from tripdesk.models.proposal import ProposalSummarySnapshot
from tripdesk.pricing.engine import reprice
from tripdesk.proposal.transform import build_proposal_snapshot
from tripdesk.sync.autosave import AutoSaveScheduler, SaveLogger, SaveMetrics, SaveStatus
from tripdesk.sync.timers import Timer

logger = logging.getLogger(__name__)

Listener = Callable[[CentralItinerary], None]


class ControllerState(str, Enum):
    """Lifecycle state of a controller."""

    uninitialized = "uninitialized"
    loading = "loading"
    ready = "ready"
    mutating = "mutating"
    cleared = "cleared"


class ItineraryController:
    """Owns the single in-memory copy of one context's itinerary."""

    def __init__(
        self,
        document_store: DocumentStore,
        fallback_store: FallbackStore,
        *,
        settings: Settings | None = None,
        timer: Timer | None = None,
        metrics: SaveMetrics | None = None,
        save_logger: SaveLogger | None = None,
        document_factory: Callable[[str], CentralItinerary] | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize controller.

        Args:
            document_store: Remote, authoritative store
            fallback_store: Local cache used when remote writes fail
            settings: Settings (default: cached application settings)
            timer: Debounce timer passed to the auto-save scheduler
            metrics: Save metrics (optional, defaults to no-op)
            save_logger: Structured save logger (optional, defaults to no-op)
            document_factory: Builds a new document when no store has one
            now_fn: Clock for updated_at stamps (default: datetime.now)
        """
        self._document_store = document_store
        self._fallback_store = fallback_store
        self._settings = settings or get_settings()
        self._timer = timer
        self._metrics = metrics
        self._save_logger = save_logger
        self._document_factory = document_factory or self._default_document
        self._now = now_fn or datetime.now

        self._state = ControllerState.uninitialized
        self._context_id: str | None = None
        self._document: CentralItinerary | None = None
        self._scheduler: AutoSaveScheduler | None = None
        self._listeners: list[Listener] = []
        self._queued: list[tuple[Operation, asyncio.Future[CentralItinerary]]] = []

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def context_id(self) -> str | None:
        return self._context_id

    @property
    def document(self) -> CentralItinerary | None:
        """Current document; None until loaded and after clear."""
        return self._document

    @property
    def save_status(self) -> SaveStatus:
        return self._scheduler.status if self._scheduler else SaveStatus.idle

    @property
    def scheduler(self) -> AutoSaveScheduler | None:
        return self._scheduler

    def _default_document(self, context_id: str) -> CentralItinerary:
        rule = MarkupRule(
            type=MarkupType.percentage, percentage=self._settings.default_markup_percentage
        )
        return new_itinerary(
            context_id,
            title="Untitled itinerary",
            start_date=self._now().date(),
            markup_rule=rule,
            currency=self._settings.default_currency,
            now=self._now(),
        )

    async def load(self, context_id: str) -> ControllerState:
        """Fetch the context's document, or create one, and become ready.

        The remote document wins over a fallback entry. A fallback entry is
        only used when the remote store has nothing for the context. Day
        totals and trip pricing are recomputed from the loaded items; a remote
        document with stale prices is scheduled for rewrite.

        Returns:
            ControllerState.ready (or cleared if clear() ran meanwhile)

        Raises:
            LoadFailedError: document store read failed; state stays uninitialized
            MalformedDocumentError: stored document did not validate or price
            InvalidStateError: controller is loading, cleared, or bound to
                another context
        """
        if self._state == ControllerState.ready and context_id == self._context_id:
            return self._state
        if self._state != ControllerState.uninitialized:
            raise InvalidStateError(f"cannot load while {self._state.value}")

        self._state = ControllerState.loading
        self._context_id = context_id
        logger.info("Loading itinerary for %s", context_id)

        try:
            payload = await self._document_store.get(context_id)
        except Exception as e:
            error = LoadFailedError(getattr(e, "reason", None) or type(e).__name__)
            if self._state != ControllerState.cleared:
                self._abort_load(error)
            raise error from e

        if self._state == ControllerState.cleared:
            return self._state

        from_remote = payload is not None
        stored: CentralItinerary | None = None
        try:
            if payload is not None:
                stored = CentralItinerary.model_validate(payload)
                document = reprice(stored)
            else:
                recovered = self._recover_fallback(context_id)
                if recovered is None:
                    recovered = self._document_factory(context_id)
                document = recovered
        except ValidationError as e:
            error = MalformedDocumentError(context_id, e.errors())
            self._abort_load(error)
            raise error from e
        except NoMatchingSlabError as e:
            error = MalformedDocumentError(
                context_id, [{"type": "no_matching_slab", "loc": ("pricing",), "msg": str(e)}]
            )
            self._abort_load(error)
            raise error from e

        self._document = document
        self._scheduler = AutoSaveScheduler(
            context_id,
            self._document_store,
            self._fallback_store,
            lambda: self._document,
            timer=self._timer,
            short_delay=self._settings.short_debounce_seconds,
            long_delay=self._settings.long_debounce_seconds,
            metrics=self._metrics,
            save_logger=self._save_logger,
        )
        if stored is not None:
            self._scheduler.mark_saved(stored)
            if document != stored:
                logger.warning("Stored prices for %s were stale; recomputed", context_id)
                self._scheduler.schedule(SaveTier.short)
        else:
            self._scheduler.schedule(SaveTier.short)

        self._state = ControllerState.ready
        logger.info(
            "Itinerary %s ready (%s, %d days)",
            context_id,
            "remote" if from_remote else "new or recovered",
            len(document.days),
        )
        self._replay_queued()
        return self._state

    def _recover_fallback(self, context_id: str) -> CentralItinerary | None:
        payload = self._fallback_store.get(context_id)
        if payload is None:
            return None
        try:
            document = reprice(CentralItinerary.model_validate(payload))
        except ValidationError as e:
            logger.warning(
                "Discarding invalid fallback entry for %s (%d errors)", context_id, e.error_count()
            )
            self._fallback_store.delete(context_id)
            return None
        except NoMatchingSlabError as e:
            logger.warning("Discarding unpriceable fallback entry for %s: %s", context_id, e)
            self._fallback_store.delete(context_id)
            return None
        logger.info("Recovered itinerary %s from fallback store", context_id)
        return document

    def _abort_load(self, error: LoadFailedError) -> None:
        logger.warning("Loading itinerary %s failed: %s", self._context_id, error.reason)
        self._state = ControllerState.uninitialized
        self._context_id = None
        queued, self._queued = self._queued, []
        for _, future in queued:
            if not future.done():
                future.set_exception(error)

    def _replay_queued(self) -> None:
        queued, self._queued = self._queued, []
        if queued:
            logger.debug("Replaying %d queued mutations for %s", len(queued), self._context_id)
        for operation, future in queued:
            if future.done():
                continue
            try:
                future.set_result(self._apply(operation))
            except Exception as e:
                future.set_exception(e)

    async def mutate(self, operation: Operation) -> CentralItinerary:
        """Apply a mutation and schedule persistence.

        While loading, the mutation is queued and applied in submission order
        once the document is ready.

        Returns:
            The new document

        Raises:
            IndexOutOfRangeError, DayNotFoundError, InvalidStateError,
            NoMatchingSlabError: the operation failed; the document is unchanged
            LoadFailedError: queued during a load that failed
        """
        if self._state == ControllerState.loading:
            future: asyncio.Future[CentralItinerary] = asyncio.get_running_loop().create_future()
            self._queued.append((operation, future))
            return await future
        if self._state != ControllerState.ready:
            raise InvalidStateError(f"cannot mutate while {self._state.value}")
        return self._apply(operation)

    def _apply(self, operation: Operation) -> CentralItinerary:
        current = self._document
        scheduler = self._scheduler
        if current is None or scheduler is None:
            raise InvalidStateError("no itinerary loaded")
        self._state = ControllerState.mutating
        try:
            updated = operation.apply(current, self._now())
        finally:
            self._state = ControllerState.ready

        if updated == current:
            return current

        self._document = updated
        scheduler.schedule(operation.save_tier)
        for listener in list(self._listeners):
            listener(updated)
        return updated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a read-only view; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def proposal_snapshot(self, party: Travelers | None = None) -> ProposalSummarySnapshot:
        """Fresh proposal view of the current document.

        Raises:
            InvalidStateError: no document loaded
            NoMatchingSlabError: slab markup has no slab for a computed total
        """
        if self._document is None:
            raise InvalidStateError("no itinerary loaded")
        return build_proposal_snapshot(
            self._document,
            party,
            extra_bed_rate=self._settings.child_surcharge_extra_bed_rate,
            nightly_rate=self._settings.child_surcharge_nightly_rate,
        )

    async def save_now(self) -> SaveStatus:
        """Persist immediately, bypassing the debounce timer.

        Raises:
            InvalidStateError: controller not ready
        """
        if self._state != ControllerState.ready or self._scheduler is None:
            raise InvalidStateError(f"cannot save while {self._state.value}")
        return await self._scheduler.save_now()

    def clear(self) -> None:
        """Discard the document, cancel pending saves and drop all listeners."""
        if self._scheduler is not None:
            self._scheduler.close()
        self._listeners.clear()
        self._document = None
        self._state = ControllerState.cleared

        queued, self._queued = self._queued, []
        for _, future in queued:
            if not future.done():
                future.set_exception(InvalidStateError("controller cleared"))
        logger.info("Cleared itinerary controller for %s", self._context_id)
